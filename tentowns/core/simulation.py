########## Force Simulation ##########
# Stateful handle that advances a force-directed layout one tick at a time.

from __future__ import annotations

import math
import random
import uuid
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from . import config
from .errors import LifecycleError
from .forces import (
    center_shift,
    link_deltas,
    many_body_deltas,
    prepare_links,
    system_energy,
)
from .run_log import log_run_event
from .types import (
    Bounds,
    FinalLayout,
    Graph,
    LayoutConfig,
    NodeKinematics,
    SimulationState,
    StepResult,
)

TickListener = Callable[[StepResult], None]

GOLDEN_ANGLE = math.pi * (3 - math.sqrt(5))


class ForceSimulation:
    """Owns one graph snapshot plus per-node kinematics for its whole life."""

    def __init__(self, graph: Graph, layout: Optional[LayoutConfig] = None, handle_id: Optional[str] = None) -> None:
        # 1 Copy the graph so callers cannot mutate it under a running layout. # steps
        # 2 Resolve names to indexes and precompute link specs.                 # steps
        self.handle_id = handle_id or uuid.uuid4().hex[:12]
        self.graph = graph.model_copy(deep=True)
        self.layout = layout or LayoutConfig()
        self.state = SimulationState.UNINITIALIZED
        self.tick_count: int = 0
        self.alpha: float = config.ALPHA_START
        self.energy: float = 0.0
        self.random = random.Random(self.layout.seed)
        self.names: List[str] = self.graph.node_names()
        self._index: Dict[str, int] = {name: position for position, name in enumerate(self.names)}
        self._links = prepare_links(self.graph, self.layout, self._index)
        self._xs: List[float] = []
        self._ys: List[float] = []
        self._vxs: List[float] = []
        self._vys: List[float] = []
        self._listeners: List[TickListener] = []

    ########## Lifecycle ##########

    def initialize(self, initial_positions: Optional[Mapping[str, Tuple[float, float]]] = None) -> "ForceSimulation":
        """Place every node, zero velocities, and start accepting steps."""

        # 1 Only a fresh handle may be placed, and only at finite coordinates. # steps
        if self.state != SimulationState.UNINITIALIZED:
            raise LifecycleError(self.handle_id, self.state, "initialize")
        overrides = _finite_overrides(initial_positions or {})
        # 2 Seeded placement first, then caller supplied coordinates win.      # steps
        placed = self._placement()
        for name, point in overrides.items():
            if name in self._index:
                placed[self._index[name]] = point
        self._xs = [x for x, _ in placed]
        self._ys = [y for _, y in placed]
        self._vxs = [0.0] * len(self.names)
        self._vys = [0.0] * len(self.names)
        self.state = SimulationState.RUNNING
        log_run_event(
            f"simulation {self.handle_id} initialized: nodes={len(self.names)} edges={len(self._links)} "
            f"placement={self.layout.placement} seed={self.layout.seed}"
        )
        return self

    def subscribe(self, listener: TickListener) -> Callable[[], None]:
        """Register a per-tick callback; returns a function that removes it."""

        self._require_live("subscribe")
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def stop(self) -> FinalLayout:
        """Freeze a running layout so renderers can read it."""

        self._require_running("stop")
        self.state = SimulationState.STOPPED
        log_run_event(f"simulation {self.handle_id} stopped by caller at tick {self.tick_count}")
        return self._final_layout()

    def dispose(self) -> None:
        """Drop kinematics and listeners; the handle is unusable afterwards."""

        if self.state == SimulationState.DISPOSED:
            raise LifecycleError(self.handle_id, self.state, "dispose")
        self._xs, self._ys, self._vxs, self._vys = [], [], [], []
        self._listeners.clear()
        self._links = []
        self.state = SimulationState.DISPOSED
        log_run_event(f"simulation {self.handle_id} disposed after {self.tick_count} ticks")

    @property
    def cooled(self) -> bool:
        """True once alpha has decayed past alpha_min; animation loops stop here."""

        return self.alpha < self.layout.alpha_min

    ########## Stepping ##########

    def step(self) -> StepResult:
        """Advance one tick using the configured energy threshold."""

        self._require_running("step")
        return self._advance(self.layout.energy_threshold)

    def run(self, max_ticks: int = config.MAX_TICKS_PER_RUN, energy_threshold: Optional[float] = None) -> FinalLayout:
        """Step until energy drops below the threshold or max_ticks are spent."""

        # 1 Validate inputs before touching state.                             # steps
        self._require_running("run")
        if max_ticks < 1:
            raise ValueError(f"max_ticks must be at least 1, got {max_ticks}")
        threshold = self.layout.energy_threshold if energy_threshold is None else energy_threshold
        # 2 Loop; _advance flips the state to converged when energy is low.   # steps
        for _ in range(max_ticks):
            self._advance(threshold)
            if self.state == SimulationState.CONVERGED:
                break
        # 3 Running out of ticks is a stop, not a convergence.                 # steps
        if self.state == SimulationState.RUNNING:
            self.state = SimulationState.STOPPED
            log_run_event(
                f"simulation {self.handle_id} stopped at tick cap {self.tick_count} energy={self.energy:.4f}"
            )
        return self._final_layout()

    def positions(self) -> Dict[str, NodeKinematics]:
        """Read-only copy of current kinematics keyed by node name."""

        self._require_live("read positions of")
        return self._snapshot_kinematics()

    def _advance(self, threshold: float) -> StepResult:
        """One simultaneous-update tick over the pre-tick snapshot."""

        # 1 Cool alpha so forces fade as the layout settles.                   # steps
        self.alpha += (self.layout.alpha_target - self.alpha) * self.layout.alpha_decay
        xs = tuple(self._xs)
        ys = tuple(self._ys)
        # 2 Every force reads the frozen snapshot, never this tick's output.   # steps
        link_vx, link_vy = link_deltas(
            xs, ys, self._links, self.layout.link_distance, self.alpha, self.layout.min_distance, self._jiggle
        )
        body_vx, body_vy = many_body_deltas(
            xs, ys, self.layout.repulsion_strength, self.alpha, self.layout.min_distance, self._jiggle
        )
        shift_x, shift_y = center_shift(xs, ys, self.layout.bounds.center, self.layout.center_strength)
        # 3 Integrate: damp velocity, move, then apply the centering shift.    # steps
        decay = self.layout.velocity_decay
        for position in range(len(xs)):
            vx = (self._vxs[position] + link_vx[position] + body_vx[position]) * decay
            vy = (self._vys[position] + link_vy[position] + body_vy[position]) * decay
            self._vxs[position] = vx
            self._vys[position] = vy
            self._xs[position] = xs[position] + vx + shift_x
            self._ys[position] = ys[position] + vy + shift_y
        self.tick_count += 1
        self.energy = system_energy(self._vxs, self._vys)
        if config.DEBUG_VERBOSE:
            log_run_event(
                f"simulation {self.handle_id} tick {self.tick_count} alpha={self.alpha:.5f} energy={self.energy:.5f}"
            )
        if self.energy < threshold:
            self.state = SimulationState.CONVERGED
            log_run_event(
                f"simulation {self.handle_id} converged at tick {self.tick_count} energy={self.energy:.5f}"
            )
        result = StepResult(
            tick=self.tick_count,
            alpha=self.alpha,
            energy=self.energy,
            state=self.state,
            positions=self._snapshot_kinematics(),
        )
        for listener in list(self._listeners):
            listener(result)
        return result

    ########## Helpers ##########

    def _placement(self) -> List[Tuple[float, float]]:
        """Starting coordinates; both policies are reproducible."""

        center_x, center_y = self.layout.bounds.center
        placed: List[Tuple[float, float]] = []
        if self.layout.placement == "phyllotaxis":
            # Sunflower spiral, seed independent.
            for position in range(len(self.names)):
                radius = config.INITIAL_RADIUS * math.sqrt(0.5 + position)
                angle = position * GOLDEN_ANGLE
                placed.append((center_x + radius * math.cos(angle), center_y + radius * math.sin(angle)))
            return placed
        limit = min(config.RANDOM_PLACEMENT_RADIUS, self.layout.bounds.width / 2, self.layout.bounds.height / 2)
        for _ in self.names:
            angle = self.random.uniform(0.0, 2 * math.pi)
            radius = limit * math.sqrt(self.random.random())
            placed.append((center_x + radius * math.cos(angle), center_y + radius * math.sin(angle)))
        return placed

    def _jiggle(self) -> float:
        return (self.random.random() - 0.5) * config.JIGGLE_SCALE

    def _snapshot_kinematics(self) -> Dict[str, NodeKinematics]:
        payload: Dict[str, NodeKinematics] = {}
        for position, name in enumerate(self.names):
            payload[name] = NodeKinematics(
                name=name,
                x=self._xs[position],
                y=self._ys[position],
                vx=self._vxs[position],
                vy=self._vys[position],
            )
        return payload

    def _final_layout(self) -> FinalLayout:
        return FinalLayout(
            ticks=self.tick_count,
            energy=self.energy,
            state=self.state,
            converged=self.state == SimulationState.CONVERGED,
            positions=self._snapshot_kinematics(),
        )

    def _require_running(self, operation: str) -> None:
        if self.state != SimulationState.RUNNING:
            raise LifecycleError(self.handle_id, self.state, operation)

    def _require_live(self, operation: str) -> None:
        if self.state in (SimulationState.DISPOSED, SimulationState.UNINITIALIZED):
            raise LifecycleError(self.handle_id, self.state, operation)


def _finite_overrides(initial_positions: Mapping[str, Tuple[float, float]]) -> Dict[str, Tuple[float, float]]:
    """Coerce caller coordinates to floats; NaN or infinity would poison the centroid."""

    overrides: Dict[str, Tuple[float, float]] = {}
    for name, (x, y) in initial_positions.items():
        point = (float(x), float(y))
        if not (math.isfinite(point[0]) and math.isfinite(point[1])):
            raise ValueError(f"initial position for '{name}' must be finite, got {point}")
        overrides[name] = point
    return overrides


########## Functional Surface ##########
# Thin wrappers so callers can drive handles without touching methods.


def initialize(
    graph: Graph,
    bounds: Optional[Bounds] = None,
    layout: Optional[LayoutConfig] = None,
    initial_positions: Optional[Mapping[str, Tuple[float, float]]] = None,
) -> ForceSimulation:
    """Create a running handle for the graph; explicit bounds override the config."""

    layout = layout or LayoutConfig()
    if bounds is not None:
        layout = layout.model_copy(update={"bounds": bounds})
    return ForceSimulation(graph, layout).initialize(initial_positions)


def step(handle: ForceSimulation) -> StepResult:
    return handle.step()


def run(
    handle: ForceSimulation,
    max_ticks: int = config.MAX_TICKS_PER_RUN,
    energy_threshold: Optional[float] = None,
) -> FinalLayout:
    return handle.run(max_ticks, energy_threshold)


def stop(handle: ForceSimulation) -> FinalLayout:
    return handle.stop()


def dispose(handle: ForceSimulation) -> None:
    handle.dispose()


def positions(handle: ForceSimulation) -> Dict[str, NodeKinematics]:
    return handle.positions()
