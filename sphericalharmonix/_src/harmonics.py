"""
Spherical Harmonic Bases
=========================

Quasi-matrices whose rows are points on the unit sphere and whose columns
are the harmonics, arranged along a degree-blocked axis: block l holds the
2l+1 harmonics of degree l.

    SphericalHarmonic       Y_l^m,  block order m = -l, ..., l
    RealSphericalHarmonic   block order m=0, sin(phi), cos(phi), sin(2 phi), ...

Truncating a basis to its first n blocks gives a finite basis that knows
its sample grid and transform plan.
"""

import abc
from typing import ClassVar, Union

import equinox as eqx
import jax.numpy as jnp
from jaxtyping import Array, Inexact
import numpy as np

from .coordinates import UnitSphere, as_spherical
from .errors import ShapeError
from .grid import TransformFactorization, sphere_grid
from .laplace import laplacian_eigenvalues
from .legendre import real_spherical_harmonic_y, spherical_harmonic_y
from .transforms import RealSphericalHarmonicTransform, SphericalHarmonicTransform
from .traversal import BlockIndex, as_blocked_vector, find_block_index


class _AbstractSphericalHarmonic(eqx.Module):
    """Shared evaluation, equality and truncation of the harmonic bases."""

    dtype: eqx.AbstractVar[np.dtype]

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.dtype == other.dtype

    def __hash__(self):
        return hash((type(self), self.dtype))

    @property
    def real_dtype(self) -> np.dtype:
        return np.finfo(self.dtype).dtype

    @property
    def axes(self) -> tuple[UnitSphere, None]:
        """(domain, degree-blocked axis); the block axis is infinite."""
        return (UnitSphere(self.real_dtype), None)

    def evaluate(self, x, index: Union[int, BlockIndex]) -> Inexact[Array, "..."]:
        """
        Value of one harmonic at point(s) x.

        Parameters:
        -----------
        x : SphericalCoordinate, ZSphericalCoordinate or array-like [..., 3]
            Point(s) on the sphere; Cartesian vectors are projected first.
        index : int or BlockIndex
            Flat index along the degree-blocked axis, or (degree, position).
        """
        if not isinstance(index, BlockIndex):
            index = find_block_index(index)
        ell, k = index
        if not 0 <= k < 2 * ell + 1:
            raise IndexError(f"Position {k} out of range for block {ell}")
        x = as_spherical(x)
        return self._block_value(x, ell, k).astype(self.dtype)

    def __getitem__(self, key) -> Inexact[Array, "..."]:
        x, index = key
        return self.evaluate(x, index)

    @abc.abstractmethod
    def _block_value(self, x, ell: int, k: int) -> Array:
        """Value at x of position k in block ell."""

    @abc.abstractmethod
    def truncate(self, n: int) -> "FiniteSphericalHarmonic":
        """The first n blocks as a finite basis."""


class SphericalHarmonic(_AbstractSphericalHarmonic):
    """
    Complex orthonormal spherical harmonics Y_l^m.

    Position k of block l is the order m = k - l.

    Attributes:
    -----------
    dtype : np.dtype
        Complex element type, default complex128.
    """

    dtype: np.dtype = eqx.field(static=True, converter=np.dtype, default=np.complex128)

    def _block_value(self, x, ell: int, k: int) -> Array:
        return spherical_harmonic_y(ell, k - ell, x.theta, x.phi)

    def truncate(self, n: int) -> "FiniteSphericalHarmonic":
        """The first n blocks (degrees 0..n-1)."""
        return FiniteSphericalHarmonic(self, n)


class RealSphericalHarmonic(_AbstractSphericalHarmonic):
    """
    Real orthonormal spherical harmonics.

    Each block starts with m=0 and alternates between sin and cos terms,
    beginning with sin.

    Attributes:
    -----------
    dtype : np.dtype
        Real element type, default float64.
    """

    dtype: np.dtype = eqx.field(static=True, converter=np.dtype, default=np.float64)

    def _block_value(self, x, ell: int, k: int) -> Array:
        return real_spherical_harmonic_y(ell, k, x.theta, x.phi)

    def truncate(self, n: int) -> "FiniteRealSphericalHarmonic":
        """The first n blocks (degrees 0..n-1)."""
        return FiniteRealSphericalHarmonic(self, n)


# ============================================================================
# Truncated bases
# ============================================================================


class _AbstractFiniteHarmonic(eqx.Module):
    """The first n blocks of a harmonic basis."""

    basis: eqx.AbstractVar[_AbstractSphericalHarmonic]
    n: eqx.AbstractVar[int]

    _plan_type: ClassVar[type]

    def __check_init__(self):
        if self.n < 1:
            raise ValueError(f"n must be positive, got {self.n}")

    @property
    def dtype(self) -> np.dtype:
        return self.basis.dtype

    @property
    def size(self) -> int:
        """Number of basis functions, n**2."""
        return self.n * self.n

    def grid(self):
        """Sample grid, shape (n, 2n-1)."""
        return sphere_grid(self.n, self.basis.real_dtype)

    def transform(self):
        """A freshly built transform plan for n."""
        return self._plan_type(self.n, self.dtype)

    def factorize(self) -> TransformFactorization:
        """Grid and plan bundled into a reusable function -> coefficients operator."""
        return TransformFactorization(self.grid(), self.transform())

    def evaluate(self, x) -> Inexact[Array, "... n2"]:
        """All n**2 basis functions at x, stacked along the last axis."""
        x = as_spherical(x)
        values = [
            self.basis.evaluate(x, BlockIndex(ell, k))
            for ell in range(self.n)
            for k in range(2 * ell + 1)
        ]
        return jnp.stack(jnp.broadcast_arrays(*values), axis=-1)

    def __getitem__(self, key):
        x, index = key
        if not isinstance(index, BlockIndex):
            if not 0 <= index < self.size:
                raise IndexError(f"Index {index} out of range for {self.size} basis functions")
        elif index.block >= self.n:
            raise IndexError(f"Block {index.block} out of range for {self.n} blocks")
        return self.basis.evaluate(x, index)

    def expand(self, coefficients, x) -> Inexact[Array, "..."]:
        """
        Evaluate the expansion sum_i coefficients[i] * basis_i(x).

        Parameters:
        -----------
        coefficients : traversal adapter or Array [n**2]
            Degree-blocked coefficients.
        x : point(s) on the sphere
        """
        vector = as_blocked_vector(coefficients, self.n)
        return self.evaluate(x) @ vector.astype(jnp.result_type(self.dtype, vector.dtype))

    def laplacian_eigenvalues(self) -> Inexact[Array, " n2"]:
        """-l(l+1) for every basis function."""
        return laplacian_eigenvalues(self.n, self.basis.real_dtype)


class FiniteSphericalHarmonic(_AbstractFiniteHarmonic):
    """Complex spherical harmonics of degree < n."""

    basis: SphericalHarmonic
    n: int = eqx.field(static=True)

    _plan_type: ClassVar[type] = SphericalHarmonicTransform


class FiniteRealSphericalHarmonic(_AbstractFiniteHarmonic):
    """Real spherical harmonics of degree < n."""

    basis: RealSphericalHarmonic
    n: int = eqx.field(static=True)

    _plan_type: ClassVar[type] = RealSphericalHarmonicTransform


def factorize(basis: _AbstractFiniteHarmonic) -> TransformFactorization:
    """Factorization of a truncated basis for transform purposes."""
    return basis.factorize()
