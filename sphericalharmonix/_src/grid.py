"""
Sample Grid and Transform Factorization
========================================

The equiangular grid used by the transform plans:

    theta_j = pi * (j + 1/2) / n,    j = 0..n-1     (rows, poles excluded)
    phi_k   = 2 * pi * k / (2n-1),   k = 0..2n-2    (columns)

Rows index colatitude and columns index longitude; the analysis step and the
traversal adapters assume exactly this layout.
"""

from typing import Callable, Union

import equinox as eqx
import jax.numpy as jnp
from jaxtyping import Array, Inexact
import numpy as np

from .coordinates import SphericalCoordinate
from .transforms import RealSphericalHarmonicTransform, SphericalHarmonicTransform
from .traversal import RealSphereTrav, SphereTrav


def sphere_grid(n: int, dtype=np.float64) -> SphericalCoordinate:
    """
    Equiangular n x (2n-1) grid of points on the sphere.

    Parameters:
    -----------
    n : int
        Number of colatitudes (the truncation degree).
    dtype : dtype
        Real floating dtype of the coordinates.

    Returns:
    --------
    SphericalCoordinate
        A coordinate whose theta and phi fields have shape (n, 2n-1).
    """
    if n < 1:
        raise ValueError(f"n must be positive, got {n}")
    dtype = np.dtype(dtype)
    # The colatitudinal grid (mod pi):
    theta = (np.arange(1, n + 1, dtype=dtype) - dtype.type(0.5)) / n
    # The longitudinal grid (mod pi):
    m = 2 * n - 1
    phi = np.arange(m, dtype=dtype) * 2 / dtype.type(m)
    THETA, PHI = np.meshgrid(np.pi * theta, np.pi * phi, indexing="ij")
    return SphericalCoordinate(jnp.asarray(THETA, dtype=dtype), jnp.asarray(PHI, dtype=dtype))


class TransformFactorization(eqx.Module):
    """
    A grid bundled with the transform plan for the same truncation.

    Solving takes function values sampled on ``grid`` (or a function to
    sample there) to degree-blocked coefficients.

    Attributes:
    -----------
    grid : SphericalCoordinate
        Sample points, shape (n, 2n-1).
    plan : SphericalHarmonicTransform | RealSphericalHarmonicTransform
        Transform plan for n.
    """

    grid: SphericalCoordinate
    plan: Union[SphericalHarmonicTransform, RealSphericalHarmonicTransform]

    def solve(
        self, values: Union[Inexact[Array, "n m"], Callable[[SphericalCoordinate], Array]]
    ) -> Union[SphereTrav, RealSphereTrav]:
        """
        Coefficients of the function sampled on the grid.

        Parameters:
        -----------
        values : Array [n, 2n-1] or callable
            Samples on ``grid``, or a function evaluated on ``grid`` first.
        """
        if callable(values):
            values = values(self.grid)
        return self.plan.to_spectral(values)

    __call__ = solve
    __matmul__ = solve

    def synthesize(self, coefficients) -> Inexact[Array, "n m"]:
        """Values on the grid of the expansion with the given coefficients."""
        return self.plan.from_spectral(coefficients)
