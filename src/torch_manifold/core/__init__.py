""" Core modules """

from .manifold import (
    ChartManifold,
    FlatManifold,
    ImpossibleInDimError,
    InternalError,
    Manifold,
    ManifoldError,
    NegativeRadiusError,
    SphericalManifold,
    chart_average,
)
from .quadrature import Quadrature
from .tolerances import PERIOD_2PI, RADIUS_TOLERANCE

__all__ = [
    "ChartManifold",
    "FlatManifold",
    "ImpossibleInDimError",
    "InternalError",
    "Manifold",
    "ManifoldError",
    "NegativeRadiusError",
    "PERIOD_2PI",
    "Quadrature",
    "RADIUS_TOLERANCE",
    "SphericalManifold",
    "chart_average",
]
