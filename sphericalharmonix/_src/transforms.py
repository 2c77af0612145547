"""
Spherical Harmonic Transform Plans
===================================

A plan ties the analysis of grid samples to the conversion from Fourier to
spherical harmonic coefficients and presents the result as a degree-blocked
vector:

    Forward (to_spectral):
        Step 1: analysis      f(theta_j, phi_k) -> bivariate Fourier coefficients
        Step 2: conversion    solve A c = fourier for the triangular matrix c
        Step 3: traversal     c -> SphereTrav(c) / RealSphereTrav(c)

    Inverse (from_spectral):
        Step 1: degree-blocked vector -> triangular matrix c
        Step 2: fourier = A c
        Step 3: synthesis     fourier -> f(theta_j, phi_k)

Building a plan precomputes both operators and is the expensive step; plans
are meant to be built once per truncation and reused.
"""

import equinox as eqx
import jax.numpy as jnp
from jaxtyping import Array, Inexact
import numpy as np

from .fasttransforms import (
    SphereAnalysis,
    Sph2FourierPlan,
    plan_sph2fourier,
    plan_sph_analysis,
    plan_spinsph2fourier,
    plan_spinsph_analysis,
)
from .traversal import (
    RealSphereTrav,
    SphereTrav,
    TriangularTraversal,
    check_triangular_shape,
    to_triangular,
)


def _coefficient_matrix(coefficients, n: int, real: bool) -> Array:
    """Triangular matrix from a traversal adapter, a triangular matrix or a vector."""
    if isinstance(coefficients, TriangularTraversal):
        return coefficients.matrix
    coefficients = jnp.asarray(coefficients)
    if coefficients.ndim == 2:
        check_triangular_shape(coefficients)
        return coefficients
    return to_triangular(coefficients, n, real)


class SphericalHarmonicTransform(eqx.Module):
    """
    Transform plan for the complex spherical harmonics (spin 0).

    Attributes:
    -----------
    sph2fourier : Sph2FourierPlan
        Conversion between harmonic and Fourier coefficients.
    analysis : SphereAnalysis
        Analysis of samples on the n x (2n-1) grid.
    """

    sph2fourier: Sph2FourierPlan
    analysis: SphereAnalysis

    def __init__(self, n: int, dtype=np.complex128):
        if not np.issubdtype(np.dtype(dtype), np.complexfloating):
            raise TypeError(f"SphericalHarmonicTransform needs a complex dtype, got {np.dtype(dtype)}")
        self.sph2fourier = plan_spinsph2fourier(dtype, n, 0)
        self.analysis = plan_spinsph_analysis(dtype, n, 2 * n - 1, 0)

    @property
    def n(self) -> int:
        return self.sph2fourier.n

    @property
    def dtype(self) -> np.dtype:
        return self.sph2fourier.dtype

    def to_spectral(self, f: Inexact[Array, "n m"]) -> SphereTrav:
        """
        Forward transform of samples on the grid.

        Parameters:
        -----------
        f : Inexact[Array, "n m"]
            Samples, rows = colatitude, columns = longitude.

        Returns:
        --------
        SphereTrav
            Coefficients, block l ordered m = -l..l.
        """
        return SphereTrav(self.sph2fourier.solve(self.analysis(f)))

    __matmul__ = to_spectral
    __mul__ = to_spectral

    def from_spectral(self, coefficients) -> Inexact[Array, "n m"]:
        """Inverse transform: coefficients -> samples on the grid."""
        c = _coefficient_matrix(coefficients, self.n, real=False)
        return self.analysis.synthesize(self.sph2fourier @ c)


class RealSphericalHarmonicTransform(eqx.Module):
    """
    Transform plan for the real spherical harmonics.

    Coefficients come back as a RealSphereTrav: per degree, the m=0 term
    followed by alternating sin and cos terms.

    Attributes:
    -----------
    sph2fourier : Sph2FourierPlan
        Conversion between harmonic and Fourier coefficients.
    analysis : SphereAnalysis
        Analysis of samples on the n x (2n-1) grid.
    """

    sph2fourier: Sph2FourierPlan
    analysis: SphereAnalysis

    def __init__(self, n: int, dtype=np.float64):
        if np.issubdtype(np.dtype(dtype), np.complexfloating):
            raise TypeError(f"RealSphericalHarmonicTransform needs a real dtype, got {np.dtype(dtype)}")
        self.sph2fourier = plan_sph2fourier(dtype, n)
        self.analysis = plan_sph_analysis(dtype, n, 2 * n - 1)

    @property
    def n(self) -> int:
        return self.sph2fourier.n

    @property
    def dtype(self) -> np.dtype:
        return self.sph2fourier.dtype

    def to_spectral(self, f: Inexact[Array, "n m"]) -> RealSphereTrav:
        """Forward transform of real samples on the grid."""
        return RealSphereTrav(self.sph2fourier.solve(self.analysis(f)))

    __matmul__ = to_spectral
    __mul__ = to_spectral

    def from_spectral(self, coefficients) -> Inexact[Array, "n m"]:
        """Inverse transform: coefficients -> samples on the grid."""
        c = _coefficient_matrix(coefficients, self.n, real=True)
        return self.analysis.synthesize(self.sph2fourier @ c)
