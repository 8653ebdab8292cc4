"""Named numeric constants shared by the manifold descriptions."""

from __future__ import annotations

import math

import torch

# Period of every angular chart axis.
PERIOD_2PI = 2.0 * math.pi

# Below this radius the angles of a spherical chart point carry no
# information, and push_forward collapses onto the center.
RADIUS_TOLERANCE = 1e-10

DEFAULT_DTYPE = torch.float64
