"""Spherical (polar in 2D) manifold around a fixed center.

Chart coordinates are ordered as

    2D: (rho, theta)         theta ∈ [0, 2π) measured from the x-axis
    3D: (rho, theta, phi)    theta ∈ [0, π] polar angle from the z-axis,
                             phi ∈ [0, 2π) azimuthal angle

The last chart axis is periodic with period 2π; radius and (in 3D) polar
angle are not.

In 2D the new point of a stencil is computed by the generic chart
averaging. In 3D averaging angles is fragile near the poles and along the
phi branch cut, so the new point is instead placed in the direction of the
Cartesian centroid, at the weighted mean distance from the center:

    rho_average = Σ w_i |x_i - c|
    mid_point   = Σ w_i x_i
    new_point   = c + (mid_point - c) · rho_average / |mid_point - c|

This is not the geodesic centroid when weights are non-uniform and points
are far apart, but it is well defined everywhere on the sphere except when
the Cartesian centroid coincides with the center. In that case the chart
average is used instead.
"""
# pylint: disable=invalid-name

from __future__ import annotations

import logging

import torch
from torch import Tensor

from ..quadrature import Quadrature, as_points
from ..tolerances import PERIOD_2PI, RADIUS_TOLERANCE
from .base import ChartManifold, _batched_stencils
from .errors import ImpossibleInDimError, InternalError, NegativeRadiusError

logger = logging.getLogger(__name__)


def _wrap_angle(angle: Tensor) -> Tensor:
    """Map atan2 output from (-π, π] into [0, 2π)."""
    angle = torch.where(angle < 0, angle + PERIOD_2PI, angle)
    # -tiny + 2π rounds to 2π
    return torch.where(angle >= PERIOD_2PI, angle - PERIOD_2PI, angle)


class SphericalManifold(ChartManifold):
    """Manifold of spheres (circles in 2D) centered at a fixed point.

    Args:
        center (Tensor): (spacedim,) center of the spheres. Its dtype and
            device are used for every computation. Defaults to float64
            for non floating point input.

    Raises:
        ImpossibleInDimError: if spacedim == 1.
    """

    def __init__(self, center):
        center = as_points(center).detach().clone()
        if center.ndim != 1:
            raise ValueError(
                f"center must have shape (spacedim,), got {tuple(center.shape)}"
            )
        spacedim = center.shape[0]
        if spacedim == 1:
            raise ImpossibleInDimError(1, type(self).__name__)

        self._center = center
        self._spacedim = spacedim
        super().__init__(self.get_periodicity(spacedim, center.dtype))

    @staticmethod
    def get_periodicity(spacedim: int, dtype: torch.dtype = torch.float64) -> Tensor:
        """Periodicity of the chart: 2π on the last axis, 0 elsewhere."""
        periodicity = torch.zeros(spacedim, dtype=dtype)
        periodicity[spacedim - 1] = PERIOD_2PI
        return periodicity

    @property
    def center(self) -> Tensor:
        return self._center.clone()

    @property
    def spacedim(self) -> int:
        return self._spacedim

    def _as_input(self, x) -> Tensor:
        x = as_points(x, dtype=self._center.dtype, device=self._center.device)
        if x.ndim == 0 or x.shape[-1] != self.spacedim:
            raise ValueError(
                f"expected points with trailing dimension {self.spacedim}, "
                f"got shape {tuple(x.shape)}"
            )
        return x

    def push_forward(self, chart_point) -> Tensor:
        """Map (rho, theta[, phi]) to ambient coordinates.

        Chart points with rho below RADIUS_TOLERANCE map to the center
        exactly, whatever their angles.

        Args:
            chart_point (Tensor): (..., spacedim) chart coordinates.

        Returns:
            (..., spacedim) ambient coordinates.

        Raises:
            NegativeRadiusError: if any rho < 0.
            InternalError: if spacedim is not 2 or 3.
        """
        x = self._as_input(chart_point)
        rho = x[..., 0]
        if bool((rho < 0).any()):
            raise NegativeRadiusError(float(rho.min()))

        theta = x[..., 1]
        if self.spacedim == 2:
            offset = torch.stack(
                [rho * torch.cos(theta), rho * torch.sin(theta)], dim=-1
            )
        elif self.spacedim == 3:
            phi = x[..., 2]
            offset = torch.stack(
                [
                    rho * torch.sin(theta) * torch.cos(phi),
                    rho * torch.sin(theta) * torch.sin(phi),
                    rho * torch.cos(theta),
                ],
                dim=-1,
            )
        else:
            raise InternalError(self.spacedim)

        collapsed = rho <= RADIUS_TOLERANCE
        if bool(collapsed.any()):
            logger.debug(
                "push_forward: %d chart point(s) with rho <= %g mapped to center",
                int(collapsed.sum()),
                RADIUS_TOLERANCE,
            )
            offset = torch.where(
                collapsed.unsqueeze(-1), torch.zeros_like(offset), offset
            )
        return offset + self._center

    def pull_back(self, space_point) -> Tensor:
        """Map ambient coordinates to (rho, theta[, phi]).

        The center itself maps to rho = 0 with all angles 0.

        Args:
            space_point (Tensor): (..., spacedim) ambient coordinates.

        Returns:
            (..., spacedim) chart coordinates.

        Raises:
            InternalError: if spacedim is not 2 or 3.
        """
        R = self._as_input(space_point) - self._center
        rho = R.norm(dim=-1)
        x = R[..., 0]
        y = R[..., 1]

        if self.spacedim == 2:
            theta = _wrap_angle(torch.atan2(y, x))
            return torch.stack([rho, theta], dim=-1)
        if self.spacedim == 3:
            z = R[..., 2]
            phi = _wrap_angle(torch.atan2(y, x))
            theta = torch.atan2(torch.sqrt(x * x + y * y), z)
            return torch.stack([rho, theta, phi], dim=-1)
        raise InternalError(self.spacedim)

    def get_new_point(self, quad: Quadrature) -> Tensor:
        """New point on the sphere through the surrounding points.

        2D: chart averaging (angles averaged with wraparound).
        3D: Cartesian centroid rescaled to the weighted mean radius.

        Args:
            quad (Quadrature): surrounding points and their weights.

        Returns:
            (spacedim,) new point in ambient coordinates.
        """
        if self.spacedim == 2:
            return super().get_new_point(quad)
        if self.spacedim != 3:
            raise InternalError(self.spacedim)

        points = self._as_input(quad.points)
        weights = quad.weights.to(dtype=points.dtype, device=points.device)
        new_point, degenerate = self._rescaled_centroid(
            points.unsqueeze(0), weights.unsqueeze(0)
        )
        if bool(degenerate[0]):
            logger.debug(
                "get_new_point: centroid coincides with center, "
                "falling back to chart averaging"
            )
            return super().get_new_point(quad)
        return new_point[0]

    def get_new_points(self, points, weights) -> Tensor:
        if self.spacedim == 2:
            return super().get_new_points(points, weights)
        if self.spacedim != 3:
            raise InternalError(self.spacedim)

        points, weights = _batched_stencils(points, weights)
        points = self._as_input(points)
        weights = weights.to(dtype=points.dtype, device=points.device)
        new_points, degenerate = self._rescaled_centroid(points, weights)
        if bool(degenerate.any()):
            logger.debug(
                "get_new_points: %d stencil(s) with centroid at center, "
                "falling back to chart averaging",
                int(degenerate.sum()),
            )
            new_points = new_points.clone()
            new_points[degenerate] = super().get_new_points(
                points[degenerate], weights[degenerate]
            )
        return new_points

    def _rescaled_centroid(self, points: Tensor, weights: Tensor) -> tuple[Tensor, Tensor]:
        """Cartesian centroid rescaled to the mean radius, per stencil.

        Args:
            points (Tensor): (N, Q, 3) surrounding points.
            weights (Tensor): (N, Q) weights.

        Returns:
            new_points (Tensor): (N, 3), meaningless where degenerate.
            degenerate (Tensor): (N,) bool, True where the centroid lies
                on the center and the direction is undefined.
        """
        rho_average = (weights * (points - self._center).norm(dim=-1)).sum(dim=-1)
        mid_point = (weights.unsqueeze(-1) * points).sum(dim=-2)

        R = mid_point - self._center
        R_norm = R.norm(dim=-1)
        degenerate = R_norm <= RADIUS_TOLERANCE * torch.clamp(rho_average, min=1.0)

        safe_norm = torch.where(degenerate, torch.ones_like(R_norm), R_norm)
        R = R * (rho_average / safe_norm).unsqueeze(-1)
        return self._center + R, degenerate

    def __repr__(self) -> str:
        return f"SphericalManifold(center={self._center.tolist()})"
