########## Demo Runner ##########
# Loads town fixtures, lays out each relationship web, and exports the result.

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from ..core import config
from ..core.db import log_event
from ..core.graph_model import build_graph, graph_summary
from ..core.run_log import log_run_event
from ..core.simulation import ForceSimulation
from ..core.types import BuildPolicy, BuildResult, FinalLayout, LayoutConfig, TownData


def town_slug(town: str) -> str:
    """Fixture file stem for a town name, e.g. 'Bryn Shander' -> 'bryn_shander'."""

    return town.strip().lower().replace(" ", "_")


def available_towns() -> List[str]:
    """Town names for every fixture in the seed directory."""

    # 1 Read the display name from each file so casing survives.                # steps
    towns: List[str] = []
    for path in sorted(Path(config.SEED_DIR).glob("*.json")):
        with path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
        towns.append(raw.get("town") or path.stem.replace("_", " ").title())
    return towns


def load_town(town: str) -> TownData:
    """Load one town fixture; missing sections come back empty."""

    # 1 Resolve the slug and parse JSON into the pass-through bundle.           # steps
    path = Path(config.SEED_DIR) / f"{town_slug(town)}.json"
    with path.open("r", encoding="utf-8") as handle:
        raw = json.load(handle)
    raw.setdefault("town", town)
    return TownData.model_validate(raw)


def build_town_graph(data: TownData, policy: BuildPolicy = BuildPolicy.LENIENT) -> BuildResult:
    """Build the NPC graph for a town and record any diagnostics."""

    # 1 Build first; strict failures propagate to the caller untouched.        # steps
    # 2 Lenient diagnostics are logged so nothing disappears quietly.          # steps
    result = build_graph(data.npcs, policy)
    for diagnostic in result.diagnostics:
        log_run_event(f"{data.town}: {diagnostic.code.value} {diagnostic.message}")
        log_event(
            town=data.town,
            handle_id=None,
            event_type="graph_diagnostic",
            data_json=diagnostic.model_dump_json(),
        )
    return result


def layout_town(
    town: str,
    layout: Optional[LayoutConfig] = None,
    max_ticks: int = config.MAX_TICKS_PER_RUN,
    energy_threshold: float = config.ENERGY_THRESHOLD,
) -> Tuple[BuildResult, FinalLayout]:
    """Headless layout of a town's relationship web."""

    # 1 Build, run to equilibrium or the cap, then release the handle.         # steps
    data = load_town(town)
    result = build_town_graph(data)
    simulation = ForceSimulation(result.graph, layout).initialize()
    final = simulation.run(max_ticks, energy_threshold)
    simulation.dispose()
    # 2 Store a compact summary for later inspection.                          # steps
    summary = dict(graph_summary(result))
    summary.update({"ticks": final.ticks, "energy": final.energy, "state": final.state.value})
    log_event(
        town=data.town,
        handle_id=simulation.handle_id,
        event_type="layout_run",
        data_json=json.dumps(summary),
    )
    return result, final


def export_layout(town: str, result: BuildResult, final: FinalLayout) -> Path:
    """Write the graph and final positions to JSON for a renderer."""

    # 1 Ensure export directory exists.                                        # steps
    export_dir = Path(config.DEFAULT_LAYOUT_EXPORT)
    export_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
    file_path = export_dir / config.DEFAULT_LAYOUT_FILENAME_TEMPLATE.format(
        town=town_slug(town), timestamp=timestamp
    )
    payload = {
        "town": town,
        "nodes": [node.model_dump() for node in result.graph.nodes],
        "edges": [edge.model_dump() for edge in result.graph.edges],
        "diagnostics": [item.model_dump(mode="json") for item in result.diagnostics],
        "ticks": final.ticks,
        "state": final.state.value,
        "positions": final.as_xy(),
    }
    with file_path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)
    return file_path


def main() -> None:
    """Entry point when running the demo script directly."""

    # 1 Lay out every bundled town and report where the files went.            # steps
    for town in available_towns():
        result, final = layout_town(town)
        path = export_layout(town, result, final)
        print(
            f"{town}: {len(result.graph.nodes)} NPCs, {len(result.graph.edges)} ties, "
            f"{final.state.value} after {final.ticks} ticks -> {path}"
        )


if __name__ == "__main__":
    main()
