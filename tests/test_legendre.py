"""
Tests for associated Legendre functions and pointwise harmonic values.
"""

import jax.numpy as jnp
import numpy as np
import pytest
from scipy.special import lpmv, sph_harm_y

from sphericalharmonix._src.legendre import (
    AssociatedLegendre,
    associated_legendre,
    lgamma,
    normalised_legendre,
    real_spherical_harmonic_y,
    spherical_harmonic_y,
)

THETA = np.linspace(0.05, np.pi - 0.05, 7)
PHI = np.linspace(0.1, 2 * np.pi - 0.1, 7)


def test_lgamma_factorials():
    assert lgamma(1) == pytest.approx(0.0, abs=1e-15)
    assert lgamma(6) == pytest.approx(np.log(120.0))
    # (l-m)!/(l+m)! well past the float64 range of the factorials
    assert np.isfinite(lgamma(201) - lgamma(401))


# ---------------------------------------------------------------------------
# AssociatedLegendre
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("m", [0, 1, 2, 3])
@pytest.mark.parametrize("n", [0, 1, 2, 4])
def test_associated_legendre_matches_scipy(m, n):
    """alp(z, n) = P_{n+m}^m(z), Condon-Shortley phase included."""
    z = np.linspace(-0.99, 0.99, 11)
    assert np.allclose(associated_legendre(m)(z, n), lpmv(m, n + m, z), rtol=1e-10, atol=1e-12)


def test_associated_legendre_closed_form():
    """P_2^1(z) = -3 z sqrt(1 - z^2)."""
    z = np.linspace(-1.0, 1.0, 9)
    assert jnp.allclose(AssociatedLegendre(1)(z, 1), -3 * z * np.sqrt(1 - z**2))


def test_associated_legendre_parameters():
    P = AssociatedLegendre(3)
    assert P.parameter == 3.5
    assert P.weight_exponent == 1.5
    assert P.scale == -15.0  # (-1)^3 * 5!!
    assert AssociatedLegendre(0).scale == 1.0


def test_associated_legendre_cached():
    assert associated_legendre(4) is associated_legendre(4)


def test_associated_legendre_negative_order():
    with pytest.raises(ValueError):
        AssociatedLegendre(-1)


# ---------------------------------------------------------------------------
# Normalised Legendre functions
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("m", [0, 1, 4])
def test_normalised_legendre_low_order(m):
    """Pbar_l^m = sqrt((2l+1)/(4 pi) (l-m)!/(l+m)!) (-1)^m P_l^m."""
    lmax = 9
    z = np.linspace(-0.95, 0.95, 9)
    P = normalised_legendre(m, lmax, z)
    assert P.shape == (lmax - m + 1, 9)
    for i, ell in enumerate(range(m, lmax + 1)):
        norm = np.exp(0.5 * (np.log((2 * ell + 1) / (4 * np.pi)) + lgamma(ell - m + 1) - lgamma(ell + m + 1)))
        assert np.allclose(P[i], (-1) ** m * norm * lpmv(m, ell, z), rtol=1e-10, atol=1e-13)


@pytest.mark.parametrize("ell, m", [(120, 90), (300, 250), (400, 400)])
def test_normalised_legendre_high_order(ell, m):
    """Finite far beyond the float64 range of the unnormalised P_l^m."""
    theta = np.array([0.3, 1.0, 1.4, 2.5])
    P = normalised_legendre(m, ell, np.cos(theta))
    assert np.all(np.isfinite(P))
    expected = (-1) ** m * sph_harm_y(ell, m, theta, 0.0).real
    assert np.allclose(P[-1], expected, rtol=1e-8, atol=1e-12)


def test_normalised_legendre_poles():
    """At the poles only order 0 survives."""
    z = np.array([-1.0, 1.0])
    assert np.allclose(normalised_legendre(0, 2, z)[:, 1], np.sqrt((2 * np.arange(3) + 1) / (4 * np.pi)))
    assert np.all(normalised_legendre(3, 6, z) == 0.0)


def test_normalised_legendre_arguments():
    with pytest.raises(ValueError):
        normalised_legendre(-1, 3, 0.5)
    with pytest.raises(ValueError):
        normalised_legendre(4, 3, 0.5)


# ---------------------------------------------------------------------------
# Complex harmonics
# ---------------------------------------------------------------------------


def test_complex_low_degree_closed_forms():
    """Y_0^0, Y_1^0, Y_1^1 and Y_2^0 against their closed forms (no Condon-Shortley phase)."""
    t, p = THETA, PHI
    assert jnp.allclose(spherical_harmonic_y(0, 0, t, p), 1 / np.sqrt(4 * np.pi))
    assert jnp.allclose(spherical_harmonic_y(1, 0, t, p), np.sqrt(3 / (4 * np.pi)) * np.cos(t))
    assert jnp.allclose(
        spherical_harmonic_y(1, 1, t, p), np.sqrt(3 / (8 * np.pi)) * np.sin(t) * np.exp(1j * p)
    )
    assert jnp.allclose(
        spherical_harmonic_y(2, 0, t, p), np.sqrt(5 / (16 * np.pi)) * (3 * np.cos(t) ** 2 - 1)
    )


@pytest.mark.parametrize("ell, m", [(1, 1), (3, 2), (5, 5), (8, 3)])
def test_complex_conjugate_symmetry(ell, m):
    """Y_l^{-m} = conj(Y_l^m)."""
    assert jnp.allclose(
        spherical_harmonic_y(ell, -m, THETA, PHI), jnp.conj(spherical_harmonic_y(ell, m, THETA, PHI))
    )


@pytest.mark.parametrize("ell", [4, 12])
def test_complex_unsold(ell):
    """Unsold's theorem: sum_m |Y_l^m|^2 = (2l+1)/(4 pi) at every point."""
    total = sum(jnp.abs(spherical_harmonic_y(ell, m, THETA, PHI)) ** 2 for m in range(-ell, ell + 1))
    assert jnp.allclose(total, (2 * ell + 1) / (4 * np.pi), rtol=1e-10)


def test_complex_high_degree_finite():
    """The log-gamma normalisation keeps high degree/order values finite and bounded."""
    ell, m = 60, 40
    y = spherical_harmonic_y(ell, m, THETA, PHI)
    assert jnp.all(jnp.isfinite(y))
    assert jnp.all(jnp.abs(y) <= np.sqrt((2 * ell + 1) / (4 * np.pi)) * (1 + 1e-8))


def test_complex_order_out_of_range():
    with pytest.raises(IndexError):
        spherical_harmonic_y(2, 3, 0.1, 0.2)


# ---------------------------------------------------------------------------
# Real harmonics
# ---------------------------------------------------------------------------


def test_real_degree_one():
    """Degree 1 positions: z, y (sin), x (cos), each times sqrt(3/(4 pi))."""
    t, p = THETA, PHI
    c = np.sqrt(3 / (4 * np.pi))
    assert jnp.allclose(real_spherical_harmonic_y(1, 0, t, p), c * np.cos(t))
    assert jnp.allclose(real_spherical_harmonic_y(1, 1, t, p), c * np.sin(t) * np.sin(p))
    assert jnp.allclose(real_spherical_harmonic_y(1, 2, t, p), c * np.sin(t) * np.cos(p))


def test_real_degree_two_sectoral():
    """Positions 3 and 4 of degree 2: sin(2 phi) and cos(2 phi) sectoral harmonics."""
    t, p = THETA, PHI
    c = np.sqrt(15 / (16 * np.pi))
    assert jnp.allclose(real_spherical_harmonic_y(2, 3, t, p), c * np.sin(t) ** 2 * np.sin(2 * p))
    assert jnp.allclose(real_spherical_harmonic_y(2, 4, t, p), c * np.sin(t) ** 2 * np.cos(2 * p))


@pytest.mark.parametrize("ell", [3, 10])
def test_real_matches_complex(ell):
    """sin/cos harmonics are sqrt(2) times the imaginary/real parts of Y_l^m."""
    for m in range(1, ell + 1):
        y = spherical_harmonic_y(ell, m, THETA, PHI)
        assert jnp.allclose(real_spherical_harmonic_y(ell, 2 * m - 1, THETA, PHI), np.sqrt(2) * y.imag)
        assert jnp.allclose(real_spherical_harmonic_y(ell, 2 * m, THETA, PHI), np.sqrt(2) * y.real)
    assert jnp.allclose(real_spherical_harmonic_y(ell, 0, THETA, PHI), spherical_harmonic_y(ell, 0, THETA, PHI).real)


def test_real_position_out_of_range():
    with pytest.raises(IndexError):
        real_spherical_harmonic_y(1, 3, 0.1, 0.2)


def test_real_matches_complex_high_order():
    """Orders past the float64 range of (2m-1)!! still agree with Y_l^m."""
    ell = 170
    theta = np.array([1.2, np.pi / 2, 1.9])
    phi = np.array([0.3, 1.1, 2.5])
    for m in (150, 151, 160):
        y = spherical_harmonic_y(ell, m, theta, phi)
        assert jnp.allclose(real_spherical_harmonic_y(ell, 2 * m - 1, theta, phi), np.sqrt(2) * y.imag, rtol=1e-7, atol=1e-10)
        assert jnp.allclose(real_spherical_harmonic_y(ell, 2 * m, theta, phi), np.sqrt(2) * y.real, rtol=1e-7, atol=1e-10)


def test_real_high_order_finite_and_bounded():
    ell, k = 200, 320
    theta = np.array([0.4, 1.3, 2.2])
    phi = np.array([0.1, 0.7, 1.9])
    y = real_spherical_harmonic_y(ell, k, theta, phi)
    assert jnp.all(jnp.isfinite(y))
    assert jnp.all(jnp.abs(y) <= np.sqrt((2 * ell + 1) / (2 * np.pi)))
    expected = np.sqrt(2) * (-1) ** 160 * sph_harm_y(ell, 160, theta, phi).real
    assert jnp.allclose(y, expected, rtol=1e-8, atol=1e-12)
