"""
Spherical Harmonic Analysis and Conversion Plans
=================================================

The two linear stages of a spherical harmonic transform on the equiangular
grid

    theta_j = pi * (j + 1/2) / n,   j = 0..n-1        (rows)
    phi_k   = 2 * pi * k / (2n-1),  k = 0..2n-2       (columns)

both working in the triangular layout (one column per order, columns ordered
m = 0, -1, +1, -2, +2, ...).

Analysis (grid values -> bivariate Fourier coefficients):
    Step 1: FFT in phi.  2n-1 samples resolve |m| <= n-1 without aliasing.
    Step 2: For each order, collocation in theta on
                cos(k*theta),      k = 0..n-1     for even |m|,
                sin((k+1)*theta),  k = 0..n-2     for odd |m|,
            which span the colatitude factor of every harmonic of that
            order up to degree n-1.

Conversion (spherical harmonic coefficients <-> Fourier coefficients):
    For each order m a dense n x (n-|m|) matrix A_m maps the coefficients of
    degrees |m|..n-1 to their Fourier coefficients.  The inverse direction
    is a least-squares solve using the reduced QR factorisation of A_m,
    exact for band-limited data.

Real plans store coefficients of 1, sin(m*phi), cos(m*phi) (negative-order
columns hold the sine terms); complex plans store coefficients of
exp(i*m*phi).

All matrices are precomputed with numpy at plan construction and
applied with jax.numpy.
"""

import functools

import equinox as eqx
import jax
import jax.numpy as jnp
from jax.scipy.linalg import solve_triangular
from jaxtyping import Array, Inexact
from loguru import logger
import numpy as np
from .errors import ShapeError
from .legendre import normalised_legendre
from .traversal import check_triangular_shape


def colatitude_nodes(n: int) -> np.ndarray:
    """Equiangular colatitudes pi*(j+1/2)/n, poles excluded."""
    return np.pi * (np.arange(n) + 0.5) / n


def column_orders(n: int) -> np.ndarray:
    """Order m stored in each column of the triangular layout: 0, -1, 1, -2, 2, ..."""
    cols = np.arange(2 * n - 1)
    return np.where(cols % 2 == 1, -((cols + 1) // 2), cols // 2)


def _is_complex(dtype) -> bool:
    return np.issubdtype(np.dtype(dtype), np.complexfloating)


def _as_plan_array(values, dtype) -> Array:
    """Cast to the plan dtype; complex input to a real plan is rejected."""
    values = jnp.asarray(values)
    if _is_complex(values.dtype) and not _is_complex(dtype):
        raise TypeError(
            f"A real plan of dtype {np.dtype(dtype)} cannot take complex input "
            f"of dtype {values.dtype}"
        )
    return values.astype(dtype)


def _fourier_collocation(n: int, odd: bool) -> np.ndarray:
    """
    Colatitude Fourier basis sampled on the grid: C[j, k].

    Even orders use cos(k*theta), odd orders sin((k+1)*theta).
    """
    theta = colatitude_nodes(n)[:, None]
    k = np.arange(n)[None, :]
    if odd:
        return np.sin((k + 1) * theta)
    return np.cos(k * theta)


def _fourier_analysis(n: int, odd: bool) -> np.ndarray:
    """
    Inverse of the collocation matrix.

    The n-th sine mode, sin(n*theta), is never excited by a harmonic of
    degree < n and is dropped; its row is zero.
    """
    inv = np.linalg.inv(_fourier_collocation(n, odd))
    if odd:
        inv[-1, :] = 0.0
    return inv


def _normalised_alp(m_abs: int, n: int, mu: np.ndarray, real: bool) -> np.ndarray:
    """
    Colatitude factor of the orthonormal harmonics of order m_abs, degrees
    m_abs..n-1: P[j, i].

    Complex:           sqrt((2l+1)/(4 pi) (l-m)!/(l+m)!) P_l^m(mu)
    Real, m > 0:       sqrt((2l+1)/(2 pi) (l-m)!/(l+m)!) P_l^m(mu)
    Real, m = 0:       sqrt((2l+1)/(4 pi)) P_l(mu)

    without the Condon-Shortley phase, built by the normalised recurrence
    so no intermediate P_l^m is ever formed.
    """
    P = normalised_legendre(m_abs, n - 1, mu).T
    if real and m_abs > 0:
        P = np.sqrt(2.0) * P
    return P


def _stacked_analysis(n: int) -> tuple[np.ndarray, np.ndarray]:
    """Per-column collocation matrices and their inverses, shape (2n-1, n, n)."""
    odd = np.abs(column_orders(n)) % 2 == 1
    colloc = {parity: _fourier_collocation(n, parity) for parity in (False, True)}
    analysis = {parity: _fourier_analysis(n, parity) for parity in (False, True)}
    return (
        np.stack([colloc[bool(p)] for p in odd]),
        np.stack([analysis[bool(p)] for p in odd]),
    )


# ============================================================================
# Analysis plan
# ============================================================================


class SphereAnalysis(eqx.Module):
    """
    Grid values -> bivariate Fourier coefficients in the triangular layout.

    Attributes:
    -----------
    n : int
        Number of colatitudes (truncation degree).
    dtype : np.dtype
        Real dtype for real plans, complex dtype for complex plans.
    """

    n: int = eqx.field(static=True)
    dtype: np.dtype = eqx.field(static=True)
    _colloc: Inexact[Array, "c n n"]
    _analysis: Inexact[Array, "c n n"]

    def __init__(self, n: int, dtype):
        self.n = n
        self.dtype = np.dtype(dtype)
        real_dtype = np.finfo(self.dtype).dtype
        colloc, analysis = _stacked_analysis(n)
        self._colloc = jnp.asarray(colloc, dtype=real_dtype)
        self._analysis = jnp.asarray(analysis, dtype=real_dtype)

    @property
    def m(self) -> int:
        """Number of longitudes."""
        return 2 * self.n - 1

    @property
    def is_complex(self) -> bool:
        return _is_complex(self.dtype)

    def _check(self, values: Array) -> Array:
        values = _as_plan_array(values, self.dtype)
        if values.shape != (self.n, self.m):
            raise ShapeError(f"Expected an array of shape {(self.n, self.m)}, got {values.shape}")
        return values

    def _longitude_analysis(self, f: Array) -> Array:
        """FFT in phi, rearranged into layout columns."""
        F = jnp.fft.fft(f, axis=-1) / self.m
        if self.is_complex:
            return F[:, np.mod(column_orders(self.n), self.m)]
        Fq = F[:, 1 : self.n]
        # interleave (sin, cos) pairs after the m=0 column
        sincos = jnp.stack([-2 * Fq.imag, 2 * Fq.real], axis=-1).reshape(self.n, 2 * (self.n - 1))
        return jnp.concatenate([F[:, :1].real, sincos], axis=1)

    def _longitude_synthesis(self, G: Array) -> Array:
        if self.is_complex:
            F = jnp.zeros_like(G).at[:, np.mod(column_orders(self.n), self.m)].set(G)
            return jnp.fft.ifft(F, axis=-1) * self.m
        pos = jnp.concatenate([G[:, :1], (G[:, 2::2] - 1j * G[:, 1::2]) / 2], axis=1)
        F = jnp.concatenate([pos, jnp.conj(pos[:, :0:-1])], axis=1)
        return (jnp.fft.ifft(F, axis=-1) * self.m).real

    def __call__(self, values: Inexact[Array, "n m"]) -> Inexact[Array, "n m"]:
        """
        Analyse grid samples.

        Parameters:
        -----------
        values : Inexact[Array, "n m"]
            Samples on the equiangular grid, rows = colatitude, columns = longitude.

        Returns:
        --------
        fourier : Inexact[Array, "n m"]
            Bivariate Fourier coefficients in the triangular layout.
        """
        G = self._longitude_analysis(self._check(values))
        # fourier[k, c] = sum_j analysis[c, k, j] * G[j, c]
        return jnp.einsum("ckj,jc->kc", self._analysis, G).astype(self.dtype)

    __mul__ = __call__
    __matmul__ = __call__

    def synthesize(self, fourier: Inexact[Array, "n m"]) -> Inexact[Array, "n m"]:
        """Inverse of the analysis: Fourier coefficients -> grid values."""
        fourier = self._check(fourier)
        G = jnp.einsum("cjk,kc->jc", self._colloc, fourier)
        return self._longitude_synthesis(G).astype(self.dtype)


# ============================================================================
# Conversion plan
# ============================================================================


class Sph2FourierPlan(eqx.Module):
    """
    Spherical harmonic <-> bivariate Fourier conversion in the triangular layout.

    ``plan @ coefficients`` maps harmonic coefficients to Fourier
    coefficients; ``plan.solve(fourier)`` is the inverse, a least-squares
    solve against the same operator.

    Attributes:
    -----------
    n : int
        Truncation degree (number of rows).
    dtype : np.dtype
        Real dtype for the real basis, complex dtype for the complex basis.
    spin : int
        Spin weight; only 0 is supported.
    """

    n: int = eqx.field(static=True)
    dtype: np.dtype = eqx.field(static=True)
    spin: int = eqx.field(static=True)
    # Per column, zero-padded to n x n:
    #   _A[c] = A_m,  _Q[c] R[c] = A_m,  _R identity-padded so it stays invertible
    _A: Inexact[Array, "c n n"]
    _Q: Inexact[Array, "c n n"]
    _R: Inexact[Array, "c n n"]

    def __init__(self, n: int, dtype, spin: int = 0):
        if spin != 0:
            raise ValueError(f"Only spin 0 is supported, got spin={spin}")
        self.n = n
        self.dtype = np.dtype(dtype)
        self.spin = spin

        mu = np.cos(colatitude_nodes(n))
        real = not _is_complex(self.dtype)
        A = np.zeros((2 * n - 1, n, n))
        Q = np.zeros((2 * n - 1, n, n))
        R = np.tile(np.eye(n), (2 * n - 1, 1, 1))
        analysis = {parity: _fourier_analysis(n, parity) for parity in (False, True)}
        for c, m in enumerate(column_orders(n)):
            m_abs = abs(int(m))
            r = n - m_abs
            lam = _normalised_alp(m_abs, n, mu, real)
            A_m = analysis[m_abs % 2 == 1] @ lam
            Q_m, R_m = np.linalg.qr(A_m)
            A[c, :, :r] = A_m
            Q[c, :, :r] = Q_m
            R[c, :r, :r] = R_m

        self._A = jnp.asarray(A, dtype=self.dtype)
        self._Q = jnp.asarray(Q, dtype=self.dtype)
        self._R = jnp.asarray(R, dtype=self.dtype)

    def _check(self, matrix) -> Array:
        matrix = _as_plan_array(matrix, self.dtype)
        check_triangular_shape(matrix)
        if matrix.shape[0] != self.n:
            raise ShapeError(f"Expected {self.n} rows, got {matrix.shape[0]}")
        return matrix

    def __matmul__(self, coefficients: Inexact[Array, "n m"]) -> Inexact[Array, "n m"]:
        """Harmonic coefficients -> Fourier coefficients."""
        coefficients = self._check(coefficients)
        # fourier[k, c] = sum_l A[c, k, l] * coefficients[l, c]
        return jnp.einsum("ckl,lc->kc", self._A, coefficients)

    __mul__ = __matmul__

    def solve(self, fourier: Inexact[Array, "n m"]) -> Inexact[Array, "n m"]:
        """Fourier coefficients -> harmonic coefficients (``plan \\ fourier``)."""
        fourier = self._check(fourier)
        y = jnp.einsum("ckl,kc->cl", self._Q, fourier)
        x = jax.vmap(functools.partial(solve_triangular, lower=False))(self._R, y)
        return x.T


# ============================================================================
# Constructors
# ============================================================================


def plan_sph_analysis(dtype, n: int, m: int) -> SphereAnalysis:
    """Analysis plan for real-valued samples on an n x m grid (m = 2n-1)."""
    if _is_complex(dtype):
        raise TypeError(f"plan_sph_analysis needs a real dtype, got {np.dtype(dtype)}")
    return _plan_analysis(dtype, n, m)


def plan_spinsph_analysis(dtype, n: int, m: int, spin: int = 0) -> SphereAnalysis:
    """Analysis plan for complex-valued samples on an n x m grid (m = 2n-1)."""
    if not _is_complex(dtype):
        raise TypeError(f"plan_spinsph_analysis needs a complex dtype, got {np.dtype(dtype)}")
    if spin != 0:
        raise ValueError(f"Only spin 0 is supported, got spin={spin}")
    return _plan_analysis(dtype, n, m)


def _plan_analysis(dtype, n: int, m: int) -> SphereAnalysis:
    if n < 1:
        raise ValueError(f"n must be positive, got {n}")
    if m != 2 * n - 1:
        raise ValueError(f"Expected m = 2n-1 = {2 * n - 1} longitudes, got {m}")
    logger.debug(f"Planning sphere analysis: n={n}, m={m}, dtype={np.dtype(dtype)}")
    return SphereAnalysis(n, dtype)


def plan_sph2fourier(dtype, n: int) -> Sph2FourierPlan:
    """Real spherical harmonic <-> Fourier conversion plan."""
    if _is_complex(dtype):
        raise TypeError(f"plan_sph2fourier needs a real dtype, got {np.dtype(dtype)}")
    if n < 1:
        raise ValueError(f"n must be positive, got {n}")
    logger.debug(f"Planning sph2fourier: n={n}, dtype={np.dtype(dtype)}")
    return Sph2FourierPlan(n, dtype)


def plan_spinsph2fourier(dtype, n: int, spin: int = 0) -> Sph2FourierPlan:
    """Complex (spin-weighted, spin 0) spherical harmonic <-> Fourier conversion plan."""
    if not _is_complex(dtype):
        raise TypeError(f"plan_spinsph2fourier needs a complex dtype, got {np.dtype(dtype)}")
    if n < 1:
        raise ValueError(f"n must be positive, got {n}")
    logger.debug(f"Planning spinsph2fourier: n={n}, spin={spin}, dtype={np.dtype(dtype)}")
    return Sph2FourierPlan(n, dtype, spin)
