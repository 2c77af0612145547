"""
Tests for SphericalCoordinate, ZSphericalCoordinate and UnitSphere.
"""

import jax.numpy as jnp
import numpy as np
import pytest

from sphericalharmonix._src.coordinates import (
    SphericalCoordinate,
    UnitSphere,
    ZSphericalCoordinate,
    as_spherical,
)
from sphericalharmonix._src.errors import DomainError, ShapeError

# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------


def test_spherical_z_roundtrip():
    """SphericalCoordinate -> ZSphericalCoordinate -> SphericalCoordinate is the identity."""
    theta, phi = np.meshgrid(
        np.linspace(0.05, np.pi - 0.05, 11),
        np.linspace(0.0, 2 * np.pi, 13, endpoint=False),
        indexing="ij",
    )
    S = SphericalCoordinate(theta, phi)
    S2 = S.to_z().to_spherical()
    assert jnp.allclose(S2.theta, theta, atol=1e-12)
    assert jnp.allclose(S2.phi, phi, atol=1e-12)


def test_z_spherical_roundtrip():
    """ZSphericalCoordinate -> SphericalCoordinate -> ZSphericalCoordinate is the identity."""
    z = np.linspace(-1.0, 1.0, 9)
    Z = ZSphericalCoordinate(0.7, z)
    Z2 = ZSphericalCoordinate.from_spherical(SphericalCoordinate.from_z(Z))
    assert jnp.allclose(Z2.z, z, atol=1e-12)
    assert jnp.allclose(Z2.phi, 0.7)


def test_cartesian_agrees_between_representations():
    """Both representations of the same point give the same 3-vector."""
    S = SphericalCoordinate(0.3, 0.4)
    assert jnp.allclose(S.to_cartesian(), S.to_z().to_cartesian(), atol=1e-14)


def test_arguments_are_promoted():
    """Integer arguments are promoted to a common floating dtype."""
    S = SphericalCoordinate(0, 1)
    assert S.theta.dtype == S.phi.dtype
    assert jnp.issubdtype(S.dtype, jnp.floating)


# ---------------------------------------------------------------------------
# Cartesian components
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("cls", ["spherical", "z"])
def test_cartesian_norm_is_one(cls):
    """Every coordinate lies on the unit sphere."""
    theta = jnp.linspace(0.0, jnp.pi, 17)
    phi = jnp.linspace(0.0, 2 * jnp.pi, 17, endpoint=False)
    S = SphericalCoordinate(theta, phi)
    x = S if cls == "spherical" else S.to_z()
    xyz = x.to_cartesian()
    assert xyz.shape == (17, 3)
    assert jnp.allclose(jnp.linalg.norm(xyz, axis=-1), 1.0, atol=1e-14)
    assert jnp.all(x.norm() == 1.0)


def test_pole_and_equator():
    """theta=0 is the North Pole; (pi/2, 0) is the x-axis."""
    assert jnp.allclose(SphericalCoordinate(0.0, 1.3).to_cartesian(), jnp.array([0.0, 0.0, 1.0]))
    assert jnp.allclose(
        SphericalCoordinate(jnp.pi / 2, 0.0).to_cartesian(), jnp.array([1.0, 0.0, 0.0]), atol=1e-15
    )
    assert jnp.allclose(ZSphericalCoordinate(0.4, 1.0).to_cartesian(), jnp.array([0.0, 0.0, 1.0]))


def test_component_indexing():
    """Indices 0, 1, 2 give x, y, z; negative indices count from the end."""
    S = SphericalCoordinate(0.3, 0.4)
    assert jnp.isclose(S[0], np.sin(0.3) * np.cos(0.4))
    assert jnp.isclose(S[1], np.sin(0.3) * np.sin(0.4))
    assert jnp.isclose(S[2], np.cos(0.3))
    assert jnp.isclose(S[-1], S[2])

    Z = S.to_z()
    for i in range(3):
        assert jnp.isclose(Z[i], S[i])


@pytest.mark.parametrize("index", [3, -4, 10, 1.0, "x"])
def test_component_index_out_of_range(index):
    """Any index outside {0, 1, 2} raises IndexError."""
    with pytest.raises(IndexError):
        SphericalCoordinate(0.3, 0.4)[index]
    with pytest.raises(IndexError):
        ZSphericalCoordinate(0.4, 0.5)[index]


def test_to_cartesian_dtype():
    S = SphericalCoordinate(0.3, 0.4)
    assert S.to_cartesian(jnp.float32).dtype == jnp.float32


# ---------------------------------------------------------------------------
# Domain validation
# ---------------------------------------------------------------------------


def test_z_out_of_domain_rejected():
    """z outside [-1, 1] fails at construction."""
    with pytest.raises(DomainError):
        ZSphericalCoordinate(0.0, 1.5)
    with pytest.raises(DomainError):
        ZSphericalCoordinate(0.0, -1.0001)
    with pytest.raises(DomainError):
        ZSphericalCoordinate(0.0, jnp.array([0.0, 2.0]))


def test_z_on_boundary_accepted():
    Z = ZSphericalCoordinate(0.0, 1.0)
    assert float(Z.z) == 1.0
    ZSphericalCoordinate(0.0, -1.0)


def test_domain_error_is_value_error():
    with pytest.raises(ValueError):
        ZSphericalCoordinate(0.0, 1.5)


# ---------------------------------------------------------------------------
# Projection of Cartesian vectors
# ---------------------------------------------------------------------------


def test_from_cartesian():
    """theta = arccos(z/|x|), phi = atan2(y, x) in [0, 2*pi)."""
    S = SphericalCoordinate.from_cartesian(jnp.array([[1.0, 1.0, 0.0], [0.0, -2.0, 0.0]]))
    assert jnp.allclose(S.theta, jnp.array([np.pi / 2, np.pi / 2]))
    assert jnp.allclose(S.phi, jnp.array([np.pi / 4, 3 * np.pi / 2]))


def test_from_cartesian_shape_error():
    with pytest.raises(ShapeError):
        SphericalCoordinate.from_cartesian(jnp.ones(2))


def test_as_spherical_dispatch():
    """as_spherical normalises every point representation."""
    S = SphericalCoordinate(0.3, 0.4)
    assert as_spherical(S) is S
    from_z = as_spherical(S.to_z())
    from_xyz = as_spherical(S.to_cartesian())
    for T in (from_z, from_xyz):
        assert jnp.isclose(T.theta, 0.3)
        assert jnp.isclose(T.phi, 0.4)


# ---------------------------------------------------------------------------
# UnitSphere
# ---------------------------------------------------------------------------


def test_unit_sphere_membership():
    sphere = UnitSphere()
    assert SphericalCoordinate(0.3, 0.4) in sphere
    assert ZSphericalCoordinate(0.3, 0.4) in sphere
    assert jnp.array([1.0, 0.0, 0.0]) in sphere
    assert jnp.array([2.0, 0.0, 0.0]) not in sphere
    assert jnp.array([1.0, 0.0]) not in sphere


def test_unit_sphere_checkpoints():
    points = UnitSphere().checkpoints()
    assert len(points) == 2
    assert jnp.isclose(points[0].theta, 0.1) and jnp.isclose(points[0].phi, 0.2)
    assert jnp.isclose(points[1].theta, 0.3) and jnp.isclose(points[1].phi, 0.4)
    assert all(p in UnitSphere() for p in points)
