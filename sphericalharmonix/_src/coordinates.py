"""
Points on the Unit Sphere
=========================

Two interchangeable representations of a point on the unit sphere, both of
which behave like a Cartesian 3-vector under indexing.

Conventions:
    theta   : colatitude in [0, pi], theta=0 at the North Pole (0, 0, 1).
    phi     : longitude in [0, 2*pi).
    z       : cos(theta) in [-1, 1].

Fields may be scalars or arrays: a whole lat-lon grid is a single coordinate
object whose fields have the grid's shape.
"""

import equinox as eqx
import jax.numpy as jnp
from jaxtyping import Array, Float
import numpy as np

from .errors import DomainError, ShapeError


def _promote(*values) -> tuple[Array, ...]:
    """Convert the inputs to JAX arrays of a common floating dtype."""
    dtype = jnp.result_type(float, *values)
    return tuple(jnp.asarray(v, dtype=dtype) for v in values)


def _component_index(i) -> int:
    if isinstance(i, (bool, np.bool_)) or not isinstance(i, (int, np.integer)):
        raise IndexError(f"Cartesian component index must be an integer, got {i!r}")
    if not -3 <= i < 3:
        raise IndexError(f"Cartesian component index {i} out of range for a 3-vector")
    return int(i) % 3


class SphericalCoordinate(eqx.Module):
    """
    A point on the unit sphere given by colatitude and longitude.

    The pole is ``SphericalCoordinate(0, phi) == (0, 0, 1)`` and
    ``SphericalCoordinate(pi/2, 0) == (1, 0, 0)``.

    Attributes:
    -----------
    theta : Float[Array, "..."]
        Colatitude [rad].
    phi : Float[Array, "..."]
        Longitude [rad].
    """

    theta: Float[Array, "..."]
    phi: Float[Array, "..."]

    def __init__(self, theta, phi):
        self.theta, self.phi = _promote(theta, phi)

    @classmethod
    def from_z(cls, S: "ZSphericalCoordinate") -> "SphericalCoordinate":
        """Convert from the (phi, z) representation: theta = arccos(z)."""
        return cls(jnp.arccos(S.z), S.phi)

    @classmethod
    def from_cartesian(cls, x) -> "SphericalCoordinate":
        """
        Project a Cartesian vector (trailing axis of length 3) onto the sphere.

        theta = arccos(z / |x|),  phi = atan2(y, x) mod 2*pi
        """
        x = jnp.asarray(x)
        if x.shape[-1:] != (3,):
            raise ShapeError(f"Expected a trailing axis of length 3, got shape {x.shape}")
        r = jnp.linalg.norm(x, axis=-1)
        theta = jnp.arccos(jnp.clip(x[..., 2] / r, -1.0, 1.0))
        phi = jnp.mod(jnp.arctan2(x[..., 1], x[..., 0]), 2 * jnp.pi)
        return cls(theta, phi)

    def to_z(self) -> "ZSphericalCoordinate":
        return ZSphericalCoordinate.from_spherical(self)

    @property
    def dtype(self):
        return self.theta.dtype

    @property
    def shape(self) -> tuple[int, ...]:
        return jnp.broadcast_shapes(self.theta.shape, self.phi.shape)

    def __getitem__(self, i: int) -> Float[Array, "..."]:
        """Cartesian component i in {0, 1, 2} (x, y, z)."""
        i = _component_index(i)
        if i == 0:
            return jnp.sin(self.theta) * jnp.cos(self.phi)
        if i == 1:
            return jnp.sin(self.theta) * jnp.sin(self.phi)
        return jnp.broadcast_to(jnp.cos(self.theta), self.shape)

    def to_cartesian(self, dtype=None) -> Float[Array, "... 3"]:
        """Cartesian vector(s) of shape (..., 3)."""
        xyz = jnp.stack([self[0], self[1], self[2]], axis=-1)
        return xyz if dtype is None else xyz.astype(dtype)

    def norm(self) -> Float[Array, "..."]:
        """Euclidean norm, identically one."""
        return jnp.ones(self.shape, dtype=self.dtype)


class ZSphericalCoordinate(eqx.Module):
    """
    A point on the unit sphere given by longitude and z = cos(theta).

    Attributes:
    -----------
    phi : Float[Array, "..."]
        Longitude [rad].
    z : Float[Array, "..."]
        Height above the equatorial plane, -1 <= z <= 1.

    Raises:
    -------
    DomainError
        If any z lies outside [-1, 1].
    """

    phi: Float[Array, "..."]
    z: Float[Array, "..."]

    def __init__(self, phi, z):
        phi, z = _promote(phi, z)
        if not bool(jnp.all((z >= -1) & (z <= 1))):
            raise DomainError(f"z must be between -1 and 1, got {z}")
        self.phi = phi
        self.z = z

    @classmethod
    def from_spherical(cls, S: SphericalCoordinate) -> "ZSphericalCoordinate":
        """Convert from the (theta, phi) representation: z = cos(theta)."""
        return cls(S.phi, jnp.clip(jnp.cos(S.theta), -1.0, 1.0))

    def to_spherical(self) -> SphericalCoordinate:
        return SphericalCoordinate.from_z(self)

    @property
    def dtype(self):
        return self.z.dtype

    @property
    def shape(self) -> tuple[int, ...]:
        return jnp.broadcast_shapes(self.phi.shape, self.z.shape)

    def __getitem__(self, i: int) -> Float[Array, "..."]:
        """Cartesian component i in {0, 1, 2} (x, y, z)."""
        i = _component_index(i)
        if i == 0:
            return jnp.sqrt(1 - self.z**2) * jnp.cos(self.phi)
        if i == 1:
            return jnp.sqrt(1 - self.z**2) * jnp.sin(self.phi)
        return jnp.broadcast_to(self.z, self.shape)

    def to_cartesian(self, dtype=None) -> Float[Array, "... 3"]:
        """Cartesian vector(s) of shape (..., 3)."""
        xyz = jnp.stack([self[0], self[1], self[2]], axis=-1)
        return xyz if dtype is None else xyz.astype(dtype)

    def norm(self) -> Float[Array, "..."]:
        """Euclidean norm, identically one."""
        return jnp.ones(self.shape, dtype=self.dtype)


AbstractSphericalCoordinate = (SphericalCoordinate, ZSphericalCoordinate)


def as_spherical(x) -> SphericalCoordinate:
    """
    Normalise any point representation to a SphericalCoordinate.

    Parameters:
    -----------
    x : SphericalCoordinate, ZSphericalCoordinate or array-like [..., 3]
        Point(s) on (or projected onto) the unit sphere.
    """
    if isinstance(x, SphericalCoordinate):
        return x
    if isinstance(x, ZSphericalCoordinate):
        return x.to_spherical()
    return SphericalCoordinate.from_cartesian(x)


class UnitSphere(eqx.Module):
    """The unit sphere as the domain of the harmonic bases."""

    dtype: np.dtype = eqx.field(static=True, converter=np.dtype, default=np.float64)

    def __contains__(self, x) -> bool:
        if isinstance(x, AbstractSphericalCoordinate):
            return True
        x = jnp.asarray(x)
        if x.shape[-1:] != (3,):
            return False
        return bool(jnp.allclose(jnp.linalg.norm(x, axis=-1), 1.0))

    def checkpoints(self) -> list[SphericalCoordinate]:
        """Fixed generic points for checking functions on the sphere."""
        return [
            SphericalCoordinate(self.dtype.type(0.1), self.dtype.type(0.2)),
            SphericalCoordinate(self.dtype.type(0.3), self.dtype.type(0.4)),
        ]
