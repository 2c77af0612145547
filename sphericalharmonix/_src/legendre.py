"""
Associated Legendre Functions and Spherical Harmonic Values
===========================================================

Pointwise evaluation of the colatitude factor of spherical harmonics.

Normalisation constants involve factorial ratios such as (l-m)!/(l+m)!
that under- or overflow long before the harmonic itself does, so they are
formed in log-space with log-gamma:

    sqrt((l-m)! / (l+m)!) = exp((lgamma(l-m+1) - lgamma(l+m+1)) / 2)

Both harmonic families are orthonormal on the unit sphere and carry no
Condon-Shortley phase.

The unnormalised P_l^m(z) itself leaves the float64 range once m passes
roughly 150, so tables of harmonics are built from the normalised
functions directly (`normalised_legendre`): a log-space sectoral seed

    Pbar_m^m = sqrt((2m+1)!! / (4 pi (2m)!!)) sin(theta)^m

followed by the upward three-term recurrence in the degree, whose
coefficients are all O(1).

References:
-----------
[1] DLMF §14.3 (associated Legendre functions in terms of Gegenbauer
    polynomials) and §18.7 (Jacobi / Gegenbauer interrelations).
"""

import functools

import equinox as eqx
import jax.numpy as jnp
from jaxtyping import Array, Complex, Float
import numpy as np
from scipy.special import eval_gegenbauer, eval_jacobi, gammaln


def lgamma(x):
    """log|Gamma(x)|."""
    return gammaln(x)


class AssociatedLegendre(eqx.Module):
    """
    Associated Legendre functions of a fixed order m.

    Realised as the ultraspherical weight (1 - z^2)^{m/2} times the
    ultraspherical (Gegenbauer) polynomial of parameter m + 1/2, scaled by
    (-1)^m (2m-1)!!:

        alp(z, n) = (-1)^m (2m-1)!! (1-z^2)^{m/2} C_n^{(m+1/2)}(z)
                  = P_{n+m}^m(z)        (Condon-Shortley phase included)

    Built once per order and reused for every degree.

    Attributes:
    -----------
    order : int
        The order m >= 0.
    scale : float
        (-1)^m (2m-1)!!.
    """

    order: int = eqx.field(static=True)
    scale: float = eqx.field(static=True)

    def __init__(self, order: int):
        if order < 0:
            raise ValueError(f"order must be nonnegative, got {order}")
        self.order = order
        self.scale = float((-1) ** order * np.prod(np.arange(1, 2 * order, 2, dtype=np.float64)))

    @property
    def weight_exponent(self) -> float:
        """Exponent of (1 - z^2) in the ultraspherical weight."""
        return self.order / 2

    @property
    def parameter(self) -> float:
        """Ultraspherical parameter lambda = m + 1/2."""
        return self.order + 0.5

    def __call__(self, z, n: int) -> Float[Array, "..."]:
        """
        Evaluate the degree-n member of the family (degree n + m overall).

        Parameters:
        -----------
        z : array-like
            Argument(s) in [-1, 1].
        n : int
            Polynomial degree, n >= 0.
        """
        z = np.asarray(z, dtype=np.float64)
        w = (1 - z**2) ** self.weight_exponent
        return jnp.asarray(self.scale * w * eval_gegenbauer(n, self.parameter, z))


@functools.lru_cache(maxsize=None)
def associated_legendre(m: int) -> AssociatedLegendre:
    """Cached AssociatedLegendre(m)."""
    return AssociatedLegendre(m)


def normalised_legendre(m: int, lmax: int, z) -> np.ndarray:
    """
    Orthonormal associated Legendre functions of order m, degrees m..lmax.

        Pbar_l^m(z) = sqrt((2l+1)/(4 pi) (l-m)!/(l+m)!) (-1)^m P_l^m(z)

    so that Y_l^m = Pbar_l^{|m|}(cos theta) exp(i m phi) for m >= 0.

    Parameters:
    -----------
    m : int
        Order, m >= 0.
    lmax : int
        Highest degree, lmax >= m.
    z : array-like
        cos(theta), in [-1, 1].

    Returns:
    --------
    P : ndarray [lmax-m+1, ...]
        Row i holds degree m + i.
    """
    if m < 0:
        raise ValueError(f"order must be nonnegative, got {m}")
    if lmax < m:
        raise ValueError(f"lmax must be at least the order {m}, got {lmax}")
    z = np.asarray(z, dtype=np.float64)
    P = np.zeros((lmax - m + 1,) + z.shape, dtype=np.float64)

    # log((2m+1)!! / (2m)!!) = lgamma(2m+2) - 2m log 2 - 2 lgamma(m+1)
    log_seed = 0.5 * (lgamma(2 * m + 2) - 2 * m * np.log(2.0) - 2 * lgamma(m + 1) - np.log(4 * np.pi))
    if m > 0:
        sin_theta = np.sqrt(np.clip(1 - z**2, 0.0, 1.0))
        with np.errstate(divide="ignore"):
            log_seed = log_seed + m * np.log(sin_theta)
    P[0] = np.exp(log_seed)
    if lmax == m:
        return P

    P[1] = np.sqrt(2 * m + 3) * z * P[0]
    a_prev = np.sqrt(2 * m + 3)
    for i, ell in enumerate(range(m + 2, lmax + 1), start=2):
        a = np.sqrt((4 * ell * ell - 1) / (ell * ell - m * m))
        P[i] = a * (z * P[i - 1] - P[i - 2] / a_prev)
        a_prev = a
    return P


def spherical_harmonic_y(ell: int, m: int, theta, phi) -> Complex[Array, "..."]:
    """
    Complex orthonormal spherical harmonic Y_l^m(theta, phi).

        Y = exp[(lgamma(l+|m|+1) + lgamma(l-|m|+1) - 2 lgamma(l+1)) / 2]
            * sqrt((2l+1)/(4 pi)) * exp(i m phi)
            * sin(theta/2)^|m| cos(theta/2)^|m| * P_{l-|m|}^{(|m|,|m|)}(cos theta)

    with P^{(a,b)} the Jacobi polynomial.  Y_l^{-m} = conj(Y_l^m).
    """
    if abs(m) > ell:
        raise IndexError(f"order {m} out of range for degree {ell}")
    theta = np.asarray(theta, dtype=np.float64)
    phi = np.asarray(phi, dtype=np.float64)
    ma = abs(m)
    log_norm = (lgamma(ell + ma + 1) + lgamma(ell - ma + 1) - 2 * lgamma(ell + 1)) / 2
    value = (
        np.exp(log_norm)
        * np.sqrt((2 * ell + 1) / (4 * np.pi))
        * np.exp(1j * m * phi)
        * np.sin(theta / 2) ** ma
        * np.cos(theta / 2) ** ma
        * eval_jacobi(ell - ma, ma, ma, np.cos(theta))
    )
    return jnp.asarray(value)


def real_spherical_harmonic_y(ell: int, k: int, theta, phi) -> Float[Array, "..."]:
    """
    Real orthonormal spherical harmonic at in-block position k of degree l.

    Positions run m=0, sin(phi), cos(phi), sin(2 phi), cos(2 phi), ...:

        k = 0:        sqrt((2l+1)/(4 pi)) P_l(z)
        k odd:        m = (k+1)//2, sin(m phi) * Lambda_l^m(z)
        k even > 0:   m = k//2,     cos(m phi) * Lambda_l^m(z)

    where Lambda_l^m(z) = (-1)^m sqrt((2l+1)/(2 pi) (l-m)!/(l+m)!) P_l^m(z)
    = sqrt(2) Pbar_l^m(z) and z = cos(theta).  Evaluated through
    `normalised_legendre`, finite for every order.
    """
    if not 0 <= k < 2 * ell + 1:
        raise IndexError(f"position {k} out of range for degree {ell}")
    z = np.cos(np.asarray(theta, dtype=np.float64))
    phi = np.asarray(phi, dtype=np.float64)
    if k == 0:
        return jnp.asarray(normalised_legendre(0, ell, z)[-1])
    m = (k + 1) // 2 if k % 2 == 1 else k // 2
    azimuthal = np.sin(m * phi) if k % 2 == 1 else np.cos(m * phi)
    return jnp.asarray(np.sqrt(2.0) * azimuthal * normalised_legendre(m, ell, z)[-1])
