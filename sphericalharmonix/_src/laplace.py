"""
Laplace-Beltrami Operator on Harmonic Coefficients
===================================================

Spherical harmonics are the eigenfunctions of the surface Laplacian:

    nabla^2 Y_l^m = -l*(l+1) * Y_l^m        (unit sphere)

so on a degree-blocked coefficient vector the operator is diagonal, constant
within each block.
"""

import equinox as eqx
import jax.numpy as jnp
from jaxtyping import Array, Float, Inexact
import numpy as np

from .traversal import as_blocked_vector


def laplacian_eigenvalues(n: int, dtype=np.float64) -> Float[Array, " n2"]:
    """
    Degree-blocked eigenvalues -l(l+1) for degrees 0..n-1.

    Returns:
    --------
    eig : Float[Array, "n2"]
        Block l repeats -l(l+1) exactly 2l+1 times.
    """
    ell = np.repeat(np.arange(n), 2 * np.arange(n) + 1)
    return jnp.asarray(-ell * (ell + 1), dtype=dtype)


class Laplacian(eqx.Module):
    """
    Surface Laplacian acting on the coefficients of the first n blocks.

    Attributes:
    -----------
    n : int
        Number of blocks.
    """

    n: int = eqx.field(static=True)

    @property
    def eigenvalues(self) -> Float[Array, " n2"]:
        return laplacian_eigenvalues(self.n)

    def __call__(self, coefficients) -> Inexact[Array, " n2"]:
        """Coefficients of nabla^2 f given the coefficients of f."""
        return self.eigenvalues * as_blocked_vector(coefficients, self.n)

    __matmul__ = __call__

    def solve(self, coefficients) -> Inexact[Array, " n2"]:
        """
        Coefficients of u with nabla^2 u = f.

        The Laplacian annihilates constants, so the l=0 coefficient of the
        right-hand side is ignored and that of the solution is zero.
        """
        eig = self.eigenvalues
        safe = jnp.where(eig == 0, 1.0, eig)
        return jnp.where(eig == 0, 0.0, as_blocked_vector(coefficients, self.n) / safe)
