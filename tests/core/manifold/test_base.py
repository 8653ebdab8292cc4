"""Tests for the generic manifold abstractions and chart averaging."""

import math

import pytest
import torch

from torch_manifold.core import (
    PERIOD_2PI,
    ChartManifold,
    FlatManifold,
    Manifold,
    Quadrature,
    chart_average,
)

### Helper Functions


def circular_distance(a: float, b: float) -> float:
    d = (a - b) % PERIOD_2PI
    return min(d, PERIOD_2PI - d)


class ShiftedChart(ChartManifold):
    """Chart that translates by a fixed offset; the last axis has period 1."""

    def __init__(self, offset):
        self.offset = torch.as_tensor(offset, dtype=torch.float64)
        periodicity = torch.zeros_like(self.offset)
        periodicity[-1] = 1.0
        super().__init__(periodicity)

    def push_forward(self, chart_point):
        return torch.as_tensor(chart_point, dtype=torch.float64) + self.offset

    def pull_back(self, space_point):
        return torch.as_tensor(space_point, dtype=torch.float64) - self.offset


### chart_average


def test_chart_average_without_periodicity():
    x = torch.tensor([[0.0, 1.0], [2.0, 3.0]], dtype=torch.float64)
    w = torch.tensor([0.25, 0.75], dtype=torch.float64)
    torch.testing.assert_close(
        chart_average(x, w), torch.tensor([1.5, 2.5], dtype=torch.float64)
    )


def test_chart_average_wraps_across_zero():
    x = torch.tensor([[1.0, 0.01], [1.0, 6.27]], dtype=torch.float64)
    w = torch.tensor([0.5, 0.5], dtype=torch.float64)
    period = torch.tensor([0.0, PERIOD_2PI], dtype=torch.float64)

    avg = chart_average(x, w, period)

    assert avg[0].item() == pytest.approx(1.0)
    assert 0.0 <= avg[1].item() < PERIOD_2PI
    assert circular_distance(avg[1].item(), 0.0) < 1e-2
    # the naive mean would sit next to pi
    assert circular_distance(avg[1].item(), math.pi) > 3.0


def test_chart_average_no_shift_within_half_period():
    x = torch.tensor([[0.5], [2.5]], dtype=torch.float64)
    w = torch.tensor([0.5, 0.5], dtype=torch.float64)
    period = torch.tensor([PERIOD_2PI], dtype=torch.float64)
    torch.testing.assert_close(
        chart_average(x, w, period), torch.tensor([1.5], dtype=torch.float64)
    )


def test_chart_average_batched():
    x = torch.tensor(
        [
            [[0.1], [6.2]],
            [[1.0], [2.0]],
        ],
        dtype=torch.float64,
    )
    w = torch.full((2, 2), 0.5, dtype=torch.float64)
    period = torch.tensor([PERIOD_2PI], dtype=torch.float64)

    avg = chart_average(x, w, period)

    assert avg.shape == (2, 1)
    expected0 = (0.1 + (6.2 - PERIOD_2PI)) / 2
    assert avg[0, 0].item() == pytest.approx(expected0)
    assert avg[1, 0].item() == pytest.approx(1.5)


### FlatManifold


def test_flat_manifold_weighted_average():
    manifold = FlatManifold()
    q = Quadrature([[0.0, 0.0, 0.0], [1.0, 2.0, 4.0]], [0.75, 0.25])
    torch.testing.assert_close(
        manifold.get_new_point(q),
        torch.tensor([0.25, 0.5, 1.0], dtype=torch.float64),
    )


def test_flat_manifold_periodic_axis():
    manifold = FlatManifold(periodicity=[0.0, 1.0])
    q = Quadrature([[0.0, 0.1], [1.0, 0.7]], [0.5, 0.5])
    new_point = manifold.get_new_point(q)
    assert new_point[0].item() == pytest.approx(0.5)
    # 0.1 and 0.7 - 1 average to -0.1, wrapped to 0.9
    assert new_point[1].item() == pytest.approx(0.9)


def test_flat_manifold_periodicity_dimension_mismatch():
    manifold = FlatManifold(periodicity=[0.0, 1.0, 0.0])
    with pytest.raises(ValueError):
        manifold.get_new_point(Quadrature([[0.0, 0.0]], [1.0]))


def test_flat_manifold_get_new_points_shared_weights():
    manifold = FlatManifold()
    points = torch.tensor(
        [
            [[0.0, 0.0], [2.0, 0.0]],
            [[0.0, 2.0], [0.0, 4.0]],
        ],
        dtype=torch.float64,
    )
    new_points = manifold.get_new_points(points, [0.5, 0.5])
    torch.testing.assert_close(
        new_points, torch.tensor([[1.0, 0.0], [0.0, 3.0]], dtype=torch.float64)
    )


@pytest.mark.parametrize(
    "points, weights",
    [
        (torch.zeros(2, 2), torch.ones(2)),  # points not 3D
        (torch.zeros(2, 2, 2), torch.ones(3, 2)),  # weight batch mismatch
        (torch.zeros(1, 2, 2), torch.tensor([[1.5, -0.5]])),  # negative weight
    ],
)
def test_get_new_points_invalid_input(points, weights):
    with pytest.raises(ValueError):
        FlatManifold().get_new_points(points, weights)


### ChartManifold


def test_chart_manifold_is_abstract():
    with pytest.raises(TypeError):
        ChartManifold()  # pylint: disable=abstract-class-instantiated


def test_chart_manifold_averages_in_chart_space():
    manifold = ShiftedChart([10.0, 20.0])
    q = Quadrature.midpoint([10.0, 20.1], [10.0, 20.7])
    new_point = manifold.get_new_point(q)
    # chart coordinates 0.1 and 0.7 on an axis of period 1 meet at 0.9
    torch.testing.assert_close(
        new_point, torch.tensor([10.0, 20.9], dtype=torch.float64)
    )


def test_chart_manifold_batched_matches_single():
    manifold = ShiftedChart([1.0, 1.0])
    points = torch.tensor(
        [
            [[1.0, 1.2], [2.0, 1.4]],
            [[1.5, 1.05], [1.5, 1.95]],
        ],
        dtype=torch.float64,
    )
    weights = torch.tensor([[0.5, 0.5], [0.25, 0.75]], dtype=torch.float64)

    batched = manifold.get_new_points(points, weights)
    single = torch.stack(
        [manifold.get_new_point(Quadrature(points[i], weights[i])) for i in range(2)]
    )
    torch.testing.assert_close(batched, single)


### Manifold


class FirstPointManifold(Manifold):
    """Returns the first surrounding point, ignoring the weights."""

    def get_new_point(self, quad):
        return quad.point(0)


def test_default_get_new_points_loops_over_stencils():
    points = torch.tensor(
        [
            [[1.0, 2.0], [3.0, 4.0]],
            [[5.0, 6.0], [7.0, 8.0]],
        ],
        dtype=torch.float64,
    )
    new_points = FirstPointManifold().get_new_points(points, [0.5, 0.5])
    torch.testing.assert_close(
        new_points, torch.tensor([[1.0, 2.0], [5.0, 6.0]], dtype=torch.float64)
    )


### Empty input


@pytest.mark.parametrize(
    "manifold",
    [
        FlatManifold(),
        FlatManifold(periodicity=[0.0, 1.0]),
        ShiftedChart([1.0, 1.0]),
        FirstPointManifold(),
    ],
)
def test_get_new_points_rejects_empty_stencils(manifold):
    with pytest.raises(ValueError):
        manifold.get_new_points(torch.zeros(2, 0, 2), torch.zeros(2, 0))


@pytest.mark.parametrize(
    "manifold",
    [
        FlatManifold(),
        FlatManifold(periodicity=[0.0, 1.0]),
        ShiftedChart([1.0, 1.0]),
        FirstPointManifold(),
    ],
)
def test_get_new_points_without_stencils(manifold):
    points = torch.zeros(0, 2, 2, dtype=torch.float64)
    new_points = manifold.get_new_points(points, [0.5, 0.5])
    assert new_points.shape == (0, 2)
