"""
Degree-Blocked Coefficient Traversal
=====================================

Spherical harmonic coefficients are produced by the fast transform in a
triangular ``n x (2n-1)`` matrix, one column per order:

    column   0   1   2   3   4  ...
    order m  0  -1  +1  -2  +2  ...

and row i of the column of order m holding degree l = |m| + i:

    [ f_0^0      f_1^-1     f_1^1     f_2^-2  ...
      f_1^0      f_2^-1     f_2^1     f_3^-2  ...
      ...
      f_{n-1}^0  0          0         0       ... ]

The rest of the library works with a degree-blocked vector instead: block l
holds the 2l+1 coefficients of degree l.  The traversal adapters below are
read-only views presenting the matrix as such a vector.

Reading the matrix in column-major order with stride st = n, the entries of
block l sit at the flat positions

    nonnegative orders:  l + (2*st - 1) * j,            j = 0..l
    negative orders:     l + st - 1 + (2*st - 1) * j,   j = 0..l-1

ordered by increasing |m|.
"""

import abc
from math import isqrt
from typing import Iterator, NamedTuple

import equinox as eqx
import jax.numpy as jnp
from jaxtyping import Array, Shaped

from .errors import ShapeError


class BlockIndex(NamedTuple):
    """Position ``index`` inside block ``block`` (both 0-based)."""

    block: int
    index: int


def block_sizes(n: int) -> tuple[int, ...]:
    """Sizes (1, 3, 5, ..., 2n-1) of the first n blocks."""
    return tuple(range(1, 2 * n, 2))


def block_offset(ell: int) -> int:
    """Flat index of the first entry of block ell."""
    return ell * ell


def find_block_index(i: int) -> BlockIndex:
    """
    Map a flat index of the degree-blocked axis to its BlockIndex.

    Block l occupies the flat range [l**2, (l+1)**2).
    """
    if i < 0:
        raise IndexError(f"Flat index must be nonnegative, got {i}")
    ell = isqrt(i)
    return BlockIndex(ell, i - ell * ell)


def check_triangular_shape(matrix: Array) -> None:
    """Raise ShapeError unless matrix is n x (2n-1)."""
    if matrix.ndim != 2:
        raise ShapeError(f"Expected a matrix, got an array of shape {matrix.shape}")
    n, m = matrix.shape
    if m != 2 * n - 1:
        raise ShapeError(
            f"size must match: a {n}-row coefficient matrix needs {2 * n - 1} "
            f"columns, got {m}"
        )


class TriangularTraversal(eqx.Module):
    """Shared block extraction for the traversal adapters."""

    matrix: Shaped[Array, "n m"] = eqx.field(converter=jnp.asarray)

    def __check_init__(self):
        check_triangular_shape(self.matrix)

    @property
    def n_blocks(self) -> int:
        return self.matrix.shape[0]

    @property
    def block_sizes(self) -> tuple[int, ...]:
        return block_sizes(self.n_blocks)

    @property
    def dtype(self):
        return self.matrix.dtype

    def __len__(self) -> int:
        return self.n_blocks**2

    def _signed_terms(self, ell: int) -> tuple[Array, Array]:
        """Nonnegative- and negative-order terms of block ell, by increasing |m|."""
        if not 0 <= ell < self.n_blocks:
            raise IndexError(f"Block {ell} out of range for {self.n_blocks} blocks")
        st = self.n_blocks
        flat = jnp.ravel(self.matrix, order="F")
        step = 2 * st - 1
        p = flat[ell + step * jnp.arange(ell + 1)]
        n = flat[ell + st - 1 + step * jnp.arange(ell)]
        return p, n

    @abc.abstractmethod
    def block(self, ell: int) -> Array:
        """Entries of block ell (degree ell), 2*ell + 1 of them."""

    def blocks(self) -> Iterator[Array]:
        for ell in range(self.n_blocks):
            yield self.block(ell)

    def to_vector(self) -> Shaped[Array, " n2"]:
        """The full degree-blocked vector of length n**2."""
        return jnp.concatenate(list(self.blocks()))

    def __getitem__(self, i) -> Array:
        if isinstance(i, BlockIndex):
            ell, k = i
        else:
            if i < 0:
                i += len(self)
            if not 0 <= i < len(self):
                raise IndexError(f"Index {i} out of range for length {len(self)}")
            ell, k = find_block_index(i)
        if not 0 <= k < 2 * ell + 1:
            raise IndexError(f"Position {k} out of range for block {ell}")
        return self.block(ell)[k]


class SphereTrav(TriangularTraversal):
    """
    Degree-blocked view of complex spherical harmonic coefficients.

    Block l is ordered by increasing signed order m = -l, ..., l, so that
    entry k of the block multiplies exp(i*(k-l)*phi).

    Raises:
    -------
    ShapeError
        If the matrix is not n x (2n-1).
    """

    def block(self, ell: int) -> Array:
        p, n = self._signed_terms(ell)
        if ell == 0:
            return p
        return jnp.concatenate([n[::-1], p])


class RealSphereTrav(TriangularTraversal):
    """
    Degree-blocked view of real spherical harmonic coefficients.

    Each block starts with the m=0 entry followed by alternating sin and cos
    terms of increasing |m|:  [m=0, -1, +1, -2, +2, ...].  The nonnegative
    and negative terms are interlaced, not concatenated.

    Raises:
    -------
    ShapeError
        If the matrix is not n x (2n-1).
    """

    def block(self, ell: int) -> Array:
        p, n = self._signed_terms(ell)
        if ell == 0:
            return p
        out = jnp.empty(2 * ell + 1, dtype=p.dtype)
        return out.at[0::2].set(p).at[1::2].set(n)


# ============================================================================
# Degree-blocked vector -> triangular matrix
# ============================================================================


def column_of(m: int) -> int:
    """Column of the triangular layout holding order m."""
    if m > 0:
        return 2 * m
    if m < 0:
        return -2 * m - 1
    return 0


def _real_order(k: int) -> int:
    """Order at position k of a RealSphereTrav block: 0, -1, +1, -2, +2, ..."""
    return k // 2 if k % 2 == 0 else -((k + 1) // 2)


def as_blocked_vector(coefficients, n: int) -> Shaped[Array, " n2"]:
    """
    Degree-blocked vector of length n**2 from a traversal adapter or a vector.

    Raises:
    -------
    ShapeError
        If the coefficients do not hold exactly n blocks.
    """
    if isinstance(coefficients, TriangularTraversal):
        coefficients = coefficients.to_vector()
    vector = jnp.asarray(coefficients)
    if vector.shape != (n * n,):
        raise ShapeError(f"Expected {n} blocks ({n * n} coefficients), got shape {vector.shape}")
    return vector


def to_triangular(vector, n: int, real: bool) -> Shaped[Array, "n m"]:
    """
    Inverse of the traversal adapters.

    Scatters a degree-blocked vector into the n x (2n-1) triangular layout,
    reading blocks in RealSphereTrav order when ``real`` and SphereTrav order
    otherwise.  Entries below the triangle are zero.
    """
    vector = as_blocked_vector(vector, n)
    rows, cols = [], []
    for ell in range(n):
        for k in range(2 * ell + 1):
            m = _real_order(k) if real else k - ell
            rows.append(ell - abs(m))
            cols.append(column_of(m))
    matrix = jnp.zeros((n, 2 * n - 1), dtype=vector.dtype)
    return matrix.at[jnp.asarray(rows), jnp.asarray(cols)].set(vector)
