########## Force Kernels ##########
# Link, many-body, and centering forces computed from a pre-tick snapshot.

from __future__ import annotations

import math
from typing import Callable, Dict, List, NamedTuple, Sequence, Tuple

from .types import Graph, LayoutConfig

Jiggle = Callable[[], float]
Deltas = Tuple[List[float], List[float]]


class LinkSpec(NamedTuple):
    """Edge resolved to snapshot indexes with its spring settings."""

    source: int
    target: int
    strength: float
    bias: float


def prepare_links(graph: Graph, layout: LayoutConfig, index: Dict[str, int]) -> List[LinkSpec]:
    """Resolve edges to indexes and precompute per-link strength and bias."""

    # 1 Count degrees once; parallel edges count like d3 does.                  # steps
    # 2 Default strength favours low degree nodes so hubs are not yanked.       # steps
    mirror = graph.to_networkx()
    links: List[LinkSpec] = []
    for edge in graph.edges:
        source_degree = mirror.degree(edge.source)
        target_degree = mirror.degree(edge.target)
        if layout.link_strength is None:
            strength = 1.0 / min(source_degree, target_degree)
        else:
            strength = layout.link_strength
        strength *= layout.strength_for_kind(edge.kind)
        bias = source_degree / (source_degree + target_degree)
        links.append(LinkSpec(index[edge.source], index[edge.target], strength, bias))
    return links


def _separation(
    xs: Sequence[float],
    ys: Sequence[float],
    first: int,
    second: int,
    jiggle: Jiggle,
) -> Tuple[float, float]:
    """Vector from first to second, nudged apart when they coincide."""

    dx = xs[second] - xs[first]
    dy = ys[second] - ys[first]
    if dx == 0.0 and dy == 0.0:
        dx = jiggle()
        dy = jiggle()
    return dx, dy


def link_deltas(
    xs: Sequence[float],
    ys: Sequence[float],
    links: Sequence[LinkSpec],
    distance: float,
    alpha: float,
    min_distance: float,
    jiggle: Jiggle,
) -> Deltas:
    """Spring velocity changes pulling each linked pair toward `distance`."""

    # 1 Start from zero so graphs without edges contribute nothing.            # steps
    dvx = [0.0] * len(xs)
    dvy = [0.0] * len(ys)
    for link in links:
        dx, dy = _separation(xs, ys, link.source, link.target, jiggle)
        length = max(math.hypot(dx, dy), min_distance)
        factor = (length - distance) / length * alpha * link.strength
        dx *= factor
        dy *= factor
        # 2 Split the correction; the lower degree end moves further.          # steps
        dvx[link.target] -= dx * link.bias
        dvy[link.target] -= dy * link.bias
        dvx[link.source] += dx * (1 - link.bias)
        dvy[link.source] += dy * (1 - link.bias)
    return dvx, dvy


def many_body_deltas(
    xs: Sequence[float],
    ys: Sequence[float],
    strength: float,
    alpha: float,
    min_distance: float,
    jiggle: Jiggle,
) -> Deltas:
    """All-pairs charge force; negative strength pushes nodes apart."""

    # 1 Visit each unordered pair once and apply equal and opposite kicks.    # steps
    count = len(xs)
    dvx = [0.0] * count
    dvy = [0.0] * count
    floor = min_distance * min_distance
    for first in range(count):
        for second in range(first + 1, count):
            dx, dy = _separation(xs, ys, first, second, jiggle)
            squared = dx * dx + dy * dy
            if squared < floor:
                # Inside min_distance the kick is strength * alpha whatever the gap.
                squared = math.sqrt(floor * squared)
            weight = strength * alpha / squared
            dvx[first] += dx * weight
            dvy[first] += dy * weight
            dvx[second] -= dx * weight
            dvy[second] -= dy * weight
    return dvx, dvy


def center_shift(
    xs: Sequence[float],
    ys: Sequence[float],
    center: Tuple[float, float],
    strength: float,
) -> Tuple[float, float]:
    """Translation that moves the snapshot centroid toward the canvas center."""

    if not xs:
        return 0.0, 0.0
    centroid_x = math.fsum(xs) / len(xs)
    centroid_y = math.fsum(ys) / len(ys)
    return (center[0] - centroid_x) * strength, (center[1] - centroid_y) * strength


def system_energy(vxs: Sequence[float], vys: Sequence[float]) -> float:
    """Sum of velocity magnitudes across nodes."""

    return math.fsum(math.hypot(vx, vy) for vx, vy in zip(vxs, vys))


# TODO: swap the all-pairs loop in many_body_deltas for a Barnes-Hut quadtree once towns pass ~200 NPCs.
