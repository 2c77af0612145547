from loguru import logger

from sphericalharmonix._src.coordinates import (
    SphericalCoordinate,
    UnitSphere,
    ZSphericalCoordinate,
    as_spherical,
)
from sphericalharmonix._src.errors import DomainError, ShapeError
from sphericalharmonix._src.fasttransforms import (
    SphereAnalysis,
    Sph2FourierPlan,
    plan_sph2fourier,
    plan_sph_analysis,
    plan_spinsph2fourier,
    plan_spinsph_analysis,
)
from sphericalharmonix._src.grid import TransformFactorization, sphere_grid
from sphericalharmonix._src.harmonics import (
    FiniteRealSphericalHarmonic,
    FiniteSphericalHarmonic,
    RealSphericalHarmonic,
    SphericalHarmonic,
    factorize,
)
from sphericalharmonix._src.laplace import Laplacian, laplacian_eigenvalues
from sphericalharmonix._src.legendre import (
    AssociatedLegendre,
    associated_legendre,
    normalised_legendre,
    real_spherical_harmonic_y,
    spherical_harmonic_y,
)
from sphericalharmonix._src.transforms import (
    RealSphericalHarmonicTransform,
    SphericalHarmonicTransform,
)
from sphericalharmonix._src.traversal import (
    BlockIndex,
    RealSphereTrav,
    SphereTrav,
    block_sizes,
    find_block_index,
    to_triangular,
)

# Library logging is opt-in: logger.enable("sphericalharmonix")
logger.disable("sphericalharmonix")

__all__ = [
    # Points on the sphere
    "SphericalCoordinate",
    "ZSphericalCoordinate",
    "UnitSphere",
    "as_spherical",
    # Errors
    "ShapeError",
    "DomainError",
    # Coefficient layout
    "BlockIndex",
    "SphereTrav",
    "RealSphereTrav",
    "block_sizes",
    "find_block_index",
    "to_triangular",
    # Pointwise evaluation
    "AssociatedLegendre",
    "associated_legendre",
    "normalised_legendre",
    "spherical_harmonic_y",
    "real_spherical_harmonic_y",
    # Bases
    "SphericalHarmonic",
    "RealSphericalHarmonic",
    "FiniteSphericalHarmonic",
    "FiniteRealSphericalHarmonic",
    # Transforms
    "SphereAnalysis",
    "Sph2FourierPlan",
    "plan_sph_analysis",
    "plan_spinsph_analysis",
    "plan_sph2fourier",
    "plan_spinsph2fourier",
    "SphericalHarmonicTransform",
    "RealSphericalHarmonicTransform",
    "sphere_grid",
    "TransformFactorization",
    "factorize",
    # Operators
    "Laplacian",
    "laplacian_eigenvalues",
]
