########## Force Kernel Tests ##########
# Checks each force in isolation on tiny hand-built snapshots.

from __future__ import annotations

import math

import pytest

from tentowns.core.forces import (
    LinkSpec,
    center_shift,
    link_deltas,
    many_body_deltas,
    prepare_links,
    system_energy,
)
from tentowns.core.graph_model import build_graph
from tentowns.core.types import LayoutConfig


def _fixed_jiggle() -> float:
    return 1e-6


def test_no_links_means_no_link_displacement() -> None:
    dvx, dvy = link_deltas([0.0, 5.0, 9.0], [1.0, 2.0, 3.0], [], 60.0, 1.0, 1.0, _fixed_jiggle)
    assert dvx == [0.0, 0.0, 0.0]
    assert dvy == [0.0, 0.0, 0.0]


def test_stretched_link_pulls_both_ends_together() -> None:
    """A 100px link with rest length 60 closes 40px split by bias."""

    # 1 Even bias splits the 40px correction evenly.                          # steps
    link = LinkSpec(source=0, target=1, strength=1.0, bias=0.5)
    dvx, dvy = link_deltas([0.0, 100.0], [0.0, 0.0], [link], 60.0, 1.0, 1.0, _fixed_jiggle)
    assert dvx == pytest.approx([20.0, -20.0])
    assert dvy == pytest.approx([0.0, 0.0])


def test_prepare_links_normalises_by_degree() -> None:
    """Chain ends have degree one, so springs run at full strength."""

    graph = build_graph(
        [
            {"name": "A", "relationships": [{"target": "B"}]},
            {"name": "B", "relationships": [{"target": "C", "type": "rivalry"}]},
            {"name": "C"},
        ]
    ).graph
    index = {"A": 0, "B": 1, "C": 2}
    first, second = prepare_links(graph, LayoutConfig(), index)
    assert (first.source, first.target) == (0, 1)
    assert first.strength == pytest.approx(1.0)
    assert first.bias == pytest.approx(1 / 3)
    assert second.bias == pytest.approx(2 / 3)
    weakened = prepare_links(graph, LayoutConfig(kind_strengths={"rivalry": 0.5}), index)
    assert weakened[1].strength == pytest.approx(0.5)
    assert weakened[0].strength == pytest.approx(1.0)


def test_many_body_is_equal_and_opposite() -> None:
    dvx, dvy = many_body_deltas([0.0, 10.0], [0.0, 0.0], -30.0, 1.0, 1.0, _fixed_jiggle)
    assert dvx == pytest.approx([-3.0, 3.0])
    assert dvy == pytest.approx([0.0, 0.0])


def test_coincident_nodes_stay_finite() -> None:
    """Identical positions are split by the jiggle, never divided by zero."""

    dvx, dvy = many_body_deltas([5.0, 5.0], [5.0, 5.0], -30.0, 1.0, 1.0, _fixed_jiggle)
    for value in dvx + dvy:
        assert math.isfinite(value)
    assert dvx[0] != 0.0
    assert dvx[0] == -dvx[1]
    link = LinkSpec(source=0, target=1, strength=1.0, bias=0.5)
    lvx, lvy = link_deltas([5.0, 5.0], [5.0, 5.0], [link], 60.0, 1.0, 1.0, _fixed_jiggle)
    assert all(math.isfinite(value) for value in lvx + lvy)


def test_coincident_nodes_get_a_full_strength_push() -> None:
    """Inside min_distance the kick is strength * alpha, however tiny the jiggle."""

    dvx, dvy = many_body_deltas([5.0, 5.0], [5.0, 5.0], -30.0, 0.5, 1.0, _fixed_jiggle)
    assert math.hypot(dvx[0], dvy[0]) == pytest.approx(15.0)
    near_x, near_y = many_body_deltas([0.0, 0.5], [0.0, 0.0], -30.0, 1.0, 1.0, _fixed_jiggle)
    assert near_x == pytest.approx([-30.0, 30.0])
    assert near_y == pytest.approx([0.0, 0.0])


def test_center_shift_moves_centroid_to_canvas_center() -> None:
    assert center_shift([0.0, 10.0], [0.0, 10.0], (100.0, 100.0), 1.0) == pytest.approx((95.0, 95.0))
    assert center_shift([0.0, 10.0], [0.0, 10.0], (100.0, 100.0), 0.5) == pytest.approx((47.5, 47.5))
    assert center_shift([], [], (100.0, 100.0), 1.0) == (0.0, 0.0)


def test_system_energy_sums_speeds() -> None:
    assert system_energy([3.0, 0.0], [4.0, 0.0]) == pytest.approx(5.0)
    assert system_energy([], []) == 0.0
