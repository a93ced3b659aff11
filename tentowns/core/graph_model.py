########## Graph Model Builder ##########
# Turns raw entity records into a name-resolved node/edge snapshot.

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Set, Union

from .errors import GraphBuildError
from .types import (
    BuildPolicy,
    BuildResult,
    Diagnostic,
    DiagnosticCode,
    Edge,
    EntityRecord,
    Graph,
    Node,
)

RecordLike = Union[EntityRecord, Mapping[str, Any]]


def _coerce_record(raw: RecordLike) -> EntityRecord:
    """Accept either parsed records or dicts straight from JSON."""

    if isinstance(raw, EntityRecord):
        return raw
    return EntityRecord.model_validate(raw)


def build_graph(records: Iterable[RecordLike], policy: BuildPolicy = BuildPolicy.LENIENT) -> BuildResult:
    """Resolve relationships by name and return the graph plus diagnostics."""

    # 1 Keep the first record for each name; later duplicates are reported.   # steps
    entities = [_coerce_record(raw) for raw in records]
    diagnostics: List[Diagnostic] = []
    nodes: List[Node] = []
    kept: List[EntityRecord] = []
    seen: Set[str] = set()
    for entity in entities:
        if entity.name in seen:
            diagnostics.append(
                Diagnostic(
                    code=DiagnosticCode.DUPLICATE_NODE,
                    message=f"node name '{entity.name}' appears more than once; later record dropped",
                    source=entity.name,
                )
            )
            continue
        seen.add(entity.name)
        kept.append(entity)
        nodes.append(
            Node(
                name=entity.name,
                role=entity.role,
                motivation=entity.motivation,
                secret=entity.secret,
            )
        )
    # 2 Walk relationships in order and resolve each target against the set.  # steps
    edges: List[Edge] = []
    for entity in kept:
        for relation in entity.relationships:
            if relation.target == entity.name:
                diagnostics.append(
                    Diagnostic(
                        code=DiagnosticCode.SELF_REFERENCE,
                        message=f"'{entity.name}' lists a relationship with itself",
                        source=entity.name,
                        target=relation.target,
                        kind=relation.kind,
                    )
                )
                continue
            if relation.target not in seen:
                diagnostics.append(
                    Diagnostic(
                        code=DiagnosticCode.DANGLING_TARGET,
                        message=f"'{entity.name}' -> '{relation.target}' ({relation.kind}): no node named '{relation.target}'",
                        source=entity.name,
                        target=relation.target,
                        kind=relation.kind,
                    )
                )
                continue
            edges.append(Edge(source=entity.name, target=relation.target, kind=relation.kind))
    # 3 Strict callers get the whole list at once instead of a partial graph. # steps
    if diagnostics and policy == BuildPolicy.STRICT:
        raise GraphBuildError(diagnostics)
    return BuildResult(graph=Graph(nodes=nodes, edges=edges), diagnostics=diagnostics)


def graph_summary(result: BuildResult) -> Dict[str, int]:
    """Small count view used by log lines and the API."""

    return {
        "nodes": len(result.graph.nodes),
        "edges": len(result.graph.edges),
        "diagnostics": len(result.diagnostics),
    }
