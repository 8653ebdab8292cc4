"""Manifold descriptions for curved mesh geometry.

This module provides:
- Manifold: abstract base class (new point from a weighted point set).
- FlatManifold: weighted average in ambient space, optionally periodic.
- ChartManifold: abstract base for manifolds given by pull_back/push_forward.
- SphericalManifold: spheres (circles in 2D) around a fixed center.
- chart_average: periodic-aware weighted average used by the above.
"""

from .base import ChartManifold, FlatManifold, Manifold, chart_average
from .errors import (
    ImpossibleInDimError,
    InternalError,
    ManifoldError,
    NegativeRadiusError,
)
from .spherical import SphericalManifold

__all__ = [
    "ChartManifold",
    "FlatManifold",
    "ImpossibleInDimError",
    "InternalError",
    "Manifold",
    "ManifoldError",
    "NegativeRadiusError",
    "SphericalManifold",
    "chart_average",
]
