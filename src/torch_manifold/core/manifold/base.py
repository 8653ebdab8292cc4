"""Manifold abstractions for placing new points during mesh refinement.

This module provides:
- Manifold: abstract base class. A manifold answers one question: given a
  weighted set of existing points, where does the new point go?
- FlatManifold: the new point is the weighted average of the surrounding
  points, taken directly in ambient coordinates (optionally periodic).
- ChartManifold: abstract base for manifolds described by a chart, i.e. a
  pair of maps

      pull_back    : ambient space → chart space
      push_forward : chart space  → ambient space

  The new point is computed by pulling every surrounding point back,
  averaging in chart space (which is usually flatter than ambient space for
  curved geometry) and pushing the average forward.
- chart_average: the periodic-aware weighted average shared by both.

Concrete manifolds only need push_forward/pull_back; they may override
get_new_point when chart averaging is not good enough (see
SphericalManifold in 3D).
"""
# pylint: disable=invalid-name

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import torch
from torch import Tensor

from ..quadrature import Quadrature, as_points


def chart_average(
    chart_points: Tensor,
    weights: Tensor,
    periodicity: Optional[Tensor] = None,
) -> Tensor:
    """Weighted average of chart points, respecting periodic axes.

    For every axis d with periodicity[d] > 0, coordinates are assumed to lie
    in [0, periodicity[d]). A point lying more than half a period above the
    smallest coordinate on that axis is shifted down by one period before
    averaging, so that e.g. the angles 0.01 and 6.27 average to a value next
    to 0 rather than next to π. Negative results are wrapped back into
    [0, periodicity[d]).

    Supports a batch of stencils: chart_points (..., Q, d) with weights
    (..., Q).

    Args:
        chart_points (Tensor): (..., Q, d) points in chart coordinates.
        weights (Tensor): (..., Q) weights.
        periodicity (Tensor | None): (d,) period per axis, 0 for
            non-periodic axes. None means no axis is periodic.

    Returns:
        (..., d) weighted average Σ w_i (x_i + shift_i).
    """
    x = chart_points
    w = weights.to(x.dtype).unsqueeze(-1)  # (..., Q, 1)

    if periodicity is None:
        return (w * x).sum(dim=-2)

    period = periodicity.to(dtype=x.dtype, device=x.device)
    periodic = period > 0
    if not bool(periodic.any()):
        return (w * x).sum(dim=-2)

    # Shift points far above the per-axis minimum down by one period
    x_min = x.min(dim=-2, keepdim=True).values
    far = (x - x_min > 0.5 * period) & periodic
    x = torch.where(far, x - period, x)

    avg = (w * x).sum(dim=-2)
    return torch.where((avg < 0) & periodic, avg + period, avg)


class Manifold(ABC):
    """Abstract base class for manifold descriptions.

    Implementations must provide:
    - get_new_point(quad): new point from a weighted point set.

    Optionally may provide:
    - get_new_points(points, weights): batched version. The default calls
      get_new_point once per stencil.
    """

    @abstractmethod
    def get_new_point(self, quad: Quadrature) -> Tensor:
        """Compute a new point from surrounding points.

        Args:
            quad (Quadrature): surrounding points and their weights.

        Returns:
            (spacedim,) new point in ambient coordinates.
        """

    def get_new_points(self, points, weights) -> Tensor:
        """Compute one new point per stencil.

        Args:
            points: (N, Q, spacedim) surrounding points of N stencils.
            weights: (N, Q) weights, or (Q,) shared by all stencils.

        Returns:
            (N, spacedim) new points.
        """
        points, weights = _batched_stencils(points, weights)
        if points.shape[0] == 0:
            return points.new_empty((0, points.shape[-1]))
        return torch.stack(
            [
                self.get_new_point(Quadrature(points[i], weights[i]))
                for i in range(points.shape[0])
            ]
        )


class FlatManifold(Manifold):
    """Manifold whose new points are weighted averages in ambient space.

    Args:
        periodicity (Tensor | None): (spacedim,) period per ambient axis, 0
            for non-periodic axes. None means nothing is periodic.
    """

    def __init__(self, periodicity=None):
        self._periodicity = None if periodicity is None else as_points(periodicity)

    @property
    def periodicity(self) -> Optional[Tensor]:
        if self._periodicity is None:
            return None
        return self._periodicity.clone()

    def get_new_point(self, quad: Quadrature) -> Tensor:
        _check_periodicity(self._periodicity, quad.spacedim)
        return chart_average(quad.points, quad.weights, self._periodicity)

    def get_new_points(self, points, weights) -> Tensor:
        points, weights = _batched_stencils(points, weights)
        _check_periodicity(self._periodicity, points.shape[-1])
        return chart_average(points, weights, self._periodicity)


class ChartManifold(Manifold):
    """Manifold described by a chart.

    The new point of a stencil is push_forward(chart_average(pull_back(x_i),
    w_i)). Subclasses implement push_forward and pull_back; both must accept
    batched (..., d) input and be mutually inverse away from singularities.

    Args:
        periodicity (Tensor | None): (chartdim,) period per chart axis, 0 for
            non-periodic axes.
    """

    def __init__(self, periodicity=None):
        self._sub_manifold = FlatManifold(periodicity)

    @property
    def periodicity(self) -> Optional[Tensor]:
        return self._sub_manifold.periodicity

    @abstractmethod
    def push_forward(self, chart_point) -> Tensor:
        """Map chart coordinates (..., d) to ambient coordinates (..., d)."""

    @abstractmethod
    def pull_back(self, space_point) -> Tensor:
        """Map ambient coordinates (..., d) to chart coordinates (..., d)."""

    def get_new_point(self, quad: Quadrature) -> Tensor:
        chart_points = self.pull_back(quad.points)
        avg = self._sub_manifold.get_new_point(Quadrature(chart_points, quad.weights))
        return self.push_forward(avg)

    def get_new_points(self, points, weights) -> Tensor:
        points, weights = _batched_stencils(points, weights)
        chart_points = self.pull_back(points)
        avg = self._sub_manifold.get_new_points(chart_points, weights)
        return self.push_forward(avg)


def _batched_stencils(points, weights) -> tuple[Tensor, Tensor]:
    """Validate and broadcast (N, Q, d) points with (N, Q) or (Q,) weights."""
    points = as_points(points)
    weights = as_points(weights, dtype=points.dtype, device=points.device)
    if points.ndim != 3:
        raise ValueError(
            f"points must have shape (N, Q, spacedim), got {tuple(points.shape)}"
        )
    if points.shape[1] == 0:
        raise ValueError("each stencil needs at least one point")
    if weights.ndim == 1:
        weights = weights.expand(points.shape[0], -1)
    if weights.shape != points.shape[:2]:
        raise ValueError(
            f"weights of shape {tuple(weights.shape)} do not match points "
            f"of shape {tuple(points.shape)}"
        )
    if (weights < 0).any():
        raise ValueError("weights must be non-negative")
    return points, weights


def _check_periodicity(periodicity: Optional[Tensor], dim: int) -> None:
    if periodicity is not None and periodicity.shape[-1] != dim:
        raise ValueError(
            f"periodicity has {periodicity.shape[-1]} entries but points "
            f"have dimension {dim}"
        )
