########## Town Demo Tests ##########
# Fixture loading, headless layouts, and exports for the bundled towns.

from __future__ import annotations

import json

import pytest

from tentowns.core.db import fetch_events
from tentowns.core.errors import GraphBuildError
from tentowns.core.types import BuildPolicy, EntityRecord, SimulationState, TownData
from tentowns.demo.town_demo import (
    available_towns,
    build_town_graph,
    export_layout,
    layout_town,
    load_town,
    town_slug,
)


def test_town_slug_and_listing() -> None:
    assert town_slug("Bryn Shander") == "bryn_shander"
    assert town_slug(" Easthaven ") == "easthaven"
    assert available_towns() == ["Bryn Shander", "Easthaven"]


def test_load_town_fills_sections() -> None:
    """Fixture NPCs parse; null relationships come back empty."""

    data = load_town("Bryn Shander")
    assert data.town == "Bryn Shander"
    assert len(data.npcs) == 6
    kadroth = next(npc for npc in data.npcs if npc.name == "Kadroth")
    assert kadroth.relationships == []
    assert data.factions
    assert load_town("easthaven").sacrifices == []


def test_load_town_missing_fixture() -> None:
    with pytest.raises(FileNotFoundError):
        load_town("Targos")


def test_bundled_towns_build_cleanly() -> None:
    for town in available_towns():
        result = build_town_graph(load_town(town), BuildPolicy.STRICT)
        assert result.ok
    assert len(build_town_graph(load_town("Bryn Shander")).graph.edges) == 9


def test_lenient_diagnostics_are_recorded() -> None:
    """Dropped ties land in the event log as graph_diagnostic rows."""

    # 1 Build a town with one dangling tie, then check both policies.         # steps
    data = TownData(
        town="Caer-Dineval",
        npcs=[EntityRecord.model_validate({"name": "Crannoc", "relationships": [{"target": "Ghost"}]})],
    )
    result = build_town_graph(data)
    assert len(result.diagnostics) == 1
    rows = fetch_events(event_type="graph_diagnostic")
    assert len(rows) == 1
    assert rows[0]["town"] == "Caer-Dineval"
    assert json.loads(rows[0]["data"])["target"] == "Ghost"
    with pytest.raises(GraphBuildError):
        build_town_graph(data, BuildPolicy.STRICT)


def test_layout_town_and_export(tmp_path) -> None:
    """Headless layout covers every NPC and exports to the configured folder."""

    # 1 Lay out Easthaven and confirm the run was logged.                     # steps
    result, final = layout_town("Easthaven", max_ticks=2000)
    assert set(final.positions) == set(result.graph.node_names())
    assert final.state == SimulationState.CONVERGED
    rows = fetch_events(event_type="layout_run")
    assert len(rows) == 1
    summary = json.loads(rows[0]["data"])
    assert summary["nodes"] == 4
    assert summary["edges"] == 6
    assert summary["state"] == "converged"
    # 2 Export lands under tmp_path via the conftest redirect.                # steps
    path = export_layout("Easthaven", result, final)
    assert path.parent == tmp_path / "exports"
    assert path.name.startswith("layout_easthaven_")
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert set(payload["positions"]) == {"Dorbulgruf Shalescar", "Imdra Tolhurst", "Sephek Kaltro", "Hlin Trollbane"}
    assert len(payload["edges"]) == 6
