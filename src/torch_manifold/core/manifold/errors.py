"""Error types raised by manifold descriptions.

All of them signal programming errors in the caller (or in this library);
geometry computations never try to recover from them.
"""

from __future__ import annotations


class ManifoldError(Exception):
    """Base class for manifold contract violations."""


class ImpossibleInDimError(ManifoldError, ValueError):
    """A manifold was requested in a dimension where it cannot exist.

    Args:
        dim (int): offending dimension.
        what (str): name of the manifold type.
    """

    def __init__(self, dim: int, what: str = "manifold"):
        self.dim = dim
        super().__init__(f"{what} is impossible in dimension {dim}")


class NegativeRadiusError(ManifoldError, ValueError):
    """A chart point with negative radius was passed to push_forward."""

    def __init__(self, radius: float):
        self.radius = radius
        super().__init__(f"Negative radius for given point: rho={radius}")


class InternalError(ManifoldError, RuntimeError):
    """A code path that only knows spacedim in {2, 3} was reached otherwise."""

    def __init__(self, spacedim: int):
        self.spacedim = spacedim
        super().__init__(
            f"internal error: spacedim={spacedim} is not supported here"
        )
