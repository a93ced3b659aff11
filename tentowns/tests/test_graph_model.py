########## Graph Builder Tests ##########
# Covers name resolution, diagnostics, and both build policies.

from __future__ import annotations

import pytest

from tentowns.core.errors import GraphBuildError
from tentowns.core.graph_model import build_graph, graph_summary
from tentowns.core.types import BuildPolicy, DiagnosticCode, EntityRecord, RelationshipRecord


def _dangling_records() -> list:
    return [
        {"name": "Duvessa", "role": "Speaker", "relationships": [{"target": "Naerth", "type": "rivalry"}]},
        {"name": "Markham", "relationships": [{"target": "Ghost", "type": "alliance"}]},
        {"name": "Naerth"},
    ]


def test_lenient_build_drops_dangling_edge_with_one_diagnostic() -> None:
    """An unknown target should cost exactly one edge and one diagnostic."""

    # 1 Build the mixed list leniently and inspect what came back.             # steps
    result = build_graph(_dangling_records())
    assert [node.name for node in result.graph.nodes] == ["Duvessa", "Markham", "Naerth"]
    assert [(edge.source, edge.target, edge.kind) for edge in result.graph.edges] == [
        ("Duvessa", "Naerth", "rivalry")
    ]
    assert len(result.diagnostics) == 1
    diagnostic = result.diagnostics[0]
    assert diagnostic.code == DiagnosticCode.DANGLING_TARGET
    assert diagnostic.source == "Markham"
    assert diagnostic.target == "Ghost"
    assert "Ghost" in diagnostic.message
    assert not result.ok


def test_strict_build_raises_with_all_diagnostics() -> None:
    """Strict mode refuses the whole input instead of returning a partial graph."""

    with pytest.raises(GraphBuildError) as info:
        build_graph(_dangling_records(), BuildPolicy.STRICT)
    assert [item.code for item in info.value.diagnostics] == [DiagnosticCode.DANGLING_TARGET]
    assert "dangling_target" in str(info.value)
    payload = info.value.as_payload()
    assert payload["error"] == "GraphBuildError"
    assert payload["diagnostics"][0]["target"] == "Ghost"


def test_strict_build_passes_clean_input() -> None:
    records = [
        {"name": "Imdra", "relationships": [{"target": "Sephek", "type": "rivalry"}]},
        {"name": "Sephek", "relationships": None},
    ]
    result = build_graph(records, BuildPolicy.STRICT)
    assert result.ok
    assert graph_summary(result) == {"nodes": 2, "edges": 1, "diagnostics": 0}


def test_duplicate_names_keep_first_record() -> None:
    """Later records with a taken name are dropped along with their ties."""

    # 1 Second "Hlin" carries a tie that must not survive.                     # steps
    records = [
        {"name": "Hlin", "role": "Merchant", "relationships": [{"target": "Sephek"}]},
        {"name": "Sephek"},
        {"name": "Hlin", "role": "Speaker", "relationships": [{"target": "Sephek", "type": "alliance"}]},
    ]
    result = build_graph(records)
    assert [node.name for node in result.graph.nodes] == ["Hlin", "Sephek"]
    assert result.graph.nodes[0].role == "Merchant"
    assert len(result.graph.edges) == 1
    assert result.graph.edges[0].kind == "other"
    assert [item.code for item in result.diagnostics] == [DiagnosticCode.DUPLICATE_NODE]


def test_self_reference_is_reported_and_dropped() -> None:
    result = build_graph([{"name": "Kadroth", "relationships": [{"target": "Kadroth", "type": "rivalry"}]}])
    assert result.graph.edges == []
    assert [item.code for item in result.diagnostics] == [DiagnosticCode.SELF_REFERENCE]


def test_parallel_edges_and_degree_are_kept() -> None:
    """Two ties between the same pair are two edges."""

    records = [
        {"name": "A", "relationships": [{"target": "B", "type": "rivalry"}, {"target": "B", "type": "alliance"}]},
        {"name": "B", "relationships": [{"target": "A", "type": "alliance"}]},
    ]
    result = build_graph(records)
    assert len(result.graph.edges) == 3
    assert result.graph.degree("A") == 3
    assert result.graph.to_networkx().number_of_edges("A", "B") == 2


def test_degree_matches_networkx_mirror() -> None:
    records = [
        {"name": "A", "relationships": [{"target": "B"}, {"target": "C", "type": "rivalry"}]},
        {"name": "B", "relationships": [{"target": "A"}]},
        {"name": "C"},
        {"name": "D"},
    ]
    graph = build_graph(records).graph
    mirror = graph.to_networkx()
    for name in graph.node_names():
        assert graph.degree(name) == mirror.degree(name)
    assert graph.degree("D") == 0


def test_build_accepts_models_and_is_repeatable() -> None:
    """Parsed records and plain dicts build the same graph, every time."""

    # 1 Build from models twice and from dicts once; all three should agree.   # steps
    models = [
        EntityRecord(name="Scramsax", role="Merchant", relationships=[RelationshipRecord(target="Rinaldo", kind="alliance")]),
        EntityRecord(name="Rinaldo"),
    ]
    first = build_graph(models)
    second = build_graph(models)
    from_dicts = build_graph([item.model_dump(by_alias=True) for item in models])
    assert first == second == from_dicts
    assert first.graph.edges[0].kind == "alliance"
    assert models[0].relationships[0].kind == "alliance"


def test_relationship_type_alias() -> None:
    relation = RelationshipRecord.model_validate({"target": "Duvessa", "type": "rivalry", "source": "Naerth"})
    assert relation.kind == "rivalry"
    assert RelationshipRecord.model_validate({"target": "Duvessa"}).kind == "other"
