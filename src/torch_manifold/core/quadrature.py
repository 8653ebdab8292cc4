"""Weighted point sets used to place new points on a manifold.

A Quadrature here is not an integration rule on a reference cell: it is the
set of existing mesh points (in ambient coordinates) together with the
weights that say how much each of them pulls on the new point. Mesh
refinement builds one of these whenever it bisects an edge or needs a face
or cell center, and hands it to Manifold.get_new_point.

Conventions:
    - points are stored as a (Q, spacedim) tensor, weights as (Q,).
    - weights are non-negative. They are expected to form a partition of
      unity (Σ w_i = 1) so that the new point is a true weighted centroid,
      but this is not enforced; see is_partition_of_unity().

Common stencils:
    - midpoint(p0, p1): edge bisection, weights (1/2, 1/2).
    - centroid(vertices): face/cell center, equal weights 1/n.
    - from_barycentric(vertices, λ): arbitrary barycentric combination.
"""
# pylint: disable=invalid-name

from __future__ import annotations

from typing import Iterator, Sequence, Union

import torch
from torch import Tensor

from .tolerances import DEFAULT_DTYPE

PointLike = Union[Tensor, Sequence[float]]


def as_points(x, dtype: torch.dtype | None = None, device=None) -> Tensor:
    """Convert array-like input to a floating point tensor.

    Args:
        x: tensor, NumPy array or nested sequence of coordinates.
        dtype (torch.dtype | None): target dtype. Defaults to the dtype of x
            when x is a floating point tensor, float64 otherwise.
        device: target device.

    Returns:
        Tensor with the same shape as x.
    """
    if not isinstance(x, Tensor):
        # Python floats would otherwise be rounded to float32 first
        return torch.as_tensor(x, dtype=dtype or DEFAULT_DTYPE, device=device)
    t = x.to(device) if device is not None else x
    if dtype is not None:
        return t.to(dtype)
    if not t.is_floating_point():
        return t.to(DEFAULT_DTYPE)
    return t


class Quadrature:
    """Ordered set of (point, weight) pairs in ambient space.

    Args:
        points (Tensor): (Q, spacedim) ambient coordinates.
        weights (Tensor): (Q,) non-negative weights.

    Raises:
        ValueError: if the shapes do not match, the set is empty or a
            weight is negative.
    """

    def __init__(self, points, weights):
        points = as_points(points)
        weights = as_points(weights, dtype=points.dtype, device=points.device)

        if points.ndim != 2:
            raise ValueError(
                f"points must have shape (Q, spacedim), got {tuple(points.shape)}"
            )
        if weights.ndim != 1:
            raise ValueError(
                f"weights must have shape (Q,), got {tuple(weights.shape)}"
            )
        if points.shape[0] != weights.shape[0]:
            raise ValueError(
                f"got {points.shape[0]} points but {weights.shape[0]} weights"
            )
        if points.shape[0] == 0:
            raise ValueError("Quadrature needs at least one point")
        if (weights < 0).any():
            raise ValueError(f"weights must be non-negative, got {weights.tolist()}")

        self.points = points
        self.weights = weights

    @classmethod
    def midpoint(cls, p0: PointLike, p1: PointLike) -> Quadrature:
        """Two-point stencil for bisecting the edge [p0, p1]."""
        points = torch.stack([as_points(p0), as_points(p1)])
        weights = torch.full((2,), 0.5, dtype=points.dtype, device=points.device)
        return cls(points, weights)

    @classmethod
    def centroid(cls, vertices) -> Quadrature:
        """Equal-weight stencil over the vertices of a face or cell.

        Args:
            vertices: (n, spacedim) vertex coordinates.

        Returns:
            Quadrature with weights 1/n.
        """
        points = as_points(vertices)
        n = points.shape[0]
        weights = torch.full((n,), 1.0 / n, dtype=points.dtype, device=points.device)
        return cls(points, weights)

    @classmethod
    def from_barycentric(cls, vertices, barycentric) -> Quadrature:
        """Stencil for the point with barycentric coordinates λ.

        Args:
            vertices: (n, spacedim) vertex coordinates.
            barycentric: (n,) barycentric coordinates, Σ λ_i = 1.

        Returns:
            Quadrature pairing each vertex with its λ_i.
        """
        return cls(vertices, barycentric)

    @property
    def size(self) -> int:
        return self.points.shape[0]

    @property
    def spacedim(self) -> int:
        return self.points.shape[1]

    def point(self, i: int) -> Tensor:
        return self.points[i]

    def weight(self, i: int) -> float:
        return float(self.weights[i])

    def __len__(self) -> int:
        return self.size

    def __iter__(self) -> Iterator[tuple[Tensor, float]]:
        for i in range(self.size):
            yield self.points[i], float(self.weights[i])

    def is_partition_of_unity(self, tol: float = 1e-12) -> bool:
        """Whether the weights sum to one within tol."""
        return abs(float(self.weights.sum()) - 1.0) <= tol

    def to(self, *args, **kwargs) -> Quadrature:
        """Return a copy with points and weights moved to device/dtype."""
        return Quadrature(
            self.points.to(*args, **kwargs),
            self.weights.to(*args, **kwargs),
        )

    def __repr__(self) -> str:
        return f"Quadrature(size={self.size}, spacedim={self.spacedim})"
