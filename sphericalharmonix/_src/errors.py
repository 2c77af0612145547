"""
Exceptions raised by sphericalharmonix.

Out-of-range component and block access raise the built-in ``IndexError``.
"""


class ShapeError(ValueError):
    """A coefficient or sample matrix does not have the required shape."""


class DomainError(ValueError):
    """A coordinate value lies outside its domain."""
