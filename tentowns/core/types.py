########## Core Types ##########
# Pydantic models and enums that describe town records, graphs, and layouts.

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple

import networkx as nx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from . import config


class NpcRole(str, Enum):
    """Roles the renderer knows how to colour; other strings pass through."""

    SPEAKER = "Speaker"
    MERCHANT = "Merchant"
    OTHER = "Other"


class RelationshipKind(str, Enum):
    """Relationship tags seen in the town fixtures."""

    RIVALRY = "rivalry"
    ALLIANCE = "alliance"
    OTHER = "other"


class BuildPolicy(str, Enum):
    """What the builder does with records it cannot resolve."""

    LENIENT = "lenient"
    STRICT = "strict"


class DiagnosticCode(str, Enum):
    """Kinds of validation problems the builder reports."""

    DANGLING_TARGET = "dangling_target"
    DUPLICATE_NODE = "duplicate_node"
    SELF_REFERENCE = "self_reference"


class SimulationState(str, Enum):
    """Lifecycle states of a simulation handle."""

    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    CONVERGED = "converged"
    STOPPED = "stopped"
    DISPOSED = "disposed"


########## Input Records ##########
# Raw shapes as they arrive from fixtures, forms, or API bodies.


class RelationshipRecord(BaseModel):
    """One relationship tuple owned by an entity record."""

    model_config = ConfigDict(populate_by_name=True)

    target: str
    kind: str = Field(default=RelationshipKind.OTHER.value, alias="type")


class EntityRecord(BaseModel):
    """Raw NPC entry with its outgoing relationships."""

    name: str
    role: str = NpcRole.OTHER.value
    motivation: str = ""
    secret: str = ""
    relationships: List[RelationshipRecord] = Field(default_factory=list)

    @field_validator("relationships", mode="before")
    @classmethod
    def _missing_relationships(cls, value: object) -> object:
        # Fixtures write null for NPCs without ties.
        if value is None:
            return []
        return value


########## Graph Model ##########
# Canonical node/edge snapshot handed to the simulation.


class Node(BaseModel):
    """Graph vertex; only the name matters to the layout."""

    name: str
    role: str = NpcRole.OTHER.value
    motivation: str = ""
    secret: str = ""


class Edge(BaseModel):
    """Directed relationship between two node names."""

    source: str
    target: str
    kind: str = RelationshipKind.OTHER.value


class Graph(BaseModel):
    """Ordered node and edge lists with name-resolved endpoints."""

    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)

    def node_names(self) -> List[str]:
        return [node.name for node in self.nodes]

    def to_networkx(self) -> nx.MultiDiGraph:
        """Mirror the snapshot into networkx, keeping parallel edges."""

        # 1 Add nodes in order, then every edge with its kind as key data.     # steps
        graph = nx.MultiDiGraph()
        for node in self.nodes:
            graph.add_node(node.name, role=node.role)
        for edge in self.edges:
            graph.add_edge(edge.source, edge.target, kind=edge.kind)
        return graph

    def degree(self, name: str) -> int:
        """Count edges touching the node, parallel edges included."""

        # Same count as the networkx mirror without building one per call.
        return sum((edge.source == name) + (edge.target == name) for edge in self.edges)


class Diagnostic(BaseModel):
    """Structured validation finding returned alongside a built graph."""

    code: DiagnosticCode
    message: str
    source: Optional[str] = None
    target: Optional[str] = None
    kind: Optional[str] = None


class BuildResult(BaseModel):
    """Graph plus every problem the builder saw while making it."""

    graph: Graph
    diagnostics: List[Diagnostic] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.diagnostics


########## Layout Configuration ##########
# The tunable surface of the force simulation.


class Bounds(BaseModel):
    """Canvas size used by the centering force."""

    width: float = Field(default=config.CANVAS_WIDTH, gt=0)
    height: float = Field(default=config.CANVAS_HEIGHT, gt=0)

    @property
    def center(self) -> Tuple[float, float]:
        return self.width / 2, self.height / 2


class LayoutConfig(BaseModel):
    """Force and integration settings; every field has a default."""

    bounds: Bounds = Field(default_factory=Bounds)
    link_distance: float = Field(default=config.LINK_DISTANCE, ge=0)
    link_strength: Optional[float] = Field(default=config.LINK_STRENGTH, ge=0)
    kind_strengths: Dict[str, float] = Field(default_factory=lambda: dict(config.KIND_STRENGTHS))
    repulsion_strength: float = config.REPULSION_STRENGTH
    velocity_decay: float = Field(default=config.VELOCITY_DECAY, gt=0, lt=1)
    min_distance: float = Field(default=config.MIN_DISTANCE, gt=0)
    center_strength: float = Field(default=config.CENTER_STRENGTH, ge=0, le=1)
    alpha_decay: float = Field(default=config.ALPHA_DECAY, ge=0, le=1)
    alpha_min: float = Field(default=config.ALPHA_MIN, ge=0)
    alpha_target: float = Field(default=config.ALPHA_TARGET, ge=0, le=1)
    energy_threshold: float = Field(default=config.ENERGY_THRESHOLD, ge=0)
    placement: Literal["random", "phyllotaxis"] = config.PLACEMENT
    seed: int = config.RANDOM_SEED

    @field_validator("kind_strengths")
    @classmethod
    def _non_negative_kinds(cls, value: Dict[str, float]) -> Dict[str, float]:
        # A negative spring never settles, so kinds may only weaken or strengthen pull.
        for kind, multiplier in value.items():
            if multiplier < 0:
                raise ValueError(f"kind strength for '{kind}' must be >= 0, got {multiplier}")
        return value

    def strength_for_kind(self, kind: str) -> float:
        return self.kind_strengths.get(kind, 1.0)


########## Layout Output ##########
# Per tick and final position streams for renderers.


class NodeKinematics(BaseModel):
    """Position and velocity of one node at the end of a tick."""

    name: str
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0


class StepResult(BaseModel):
    """Outcome of advancing a simulation by one tick."""

    tick: int
    alpha: float
    energy: float
    state: SimulationState
    positions: Dict[str, NodeKinematics] = Field(default_factory=dict)


class FinalLayout(BaseModel):
    """Positions left behind when a blocking run ends."""

    ticks: int
    energy: float
    state: SimulationState
    converged: bool
    positions: Dict[str, NodeKinematics] = Field(default_factory=dict)

    def as_xy(self) -> Dict[str, Dict[str, float]]:
        """Return a plain name -> {x, y} mapping for overlays."""

        return {name: {"x": item.x, "y": item.y} for name, item in self.positions.items()}


########## Town Fixtures ##########
# Per town bundle; everything except NPCs passes through untouched.


class TownData(BaseModel):
    """Contents of one town fixture file."""

    town: str
    npcs: List[EntityRecord] = Field(default_factory=list)
    events: List[Dict[str, Any]] = Field(default_factory=list)
    rumours: List[Dict[str, Any]] = Field(default_factory=list)
    sacrifices: List[Dict[str, Any]] = Field(default_factory=list)
    factions: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("npcs", "events", "rumours", "sacrifices", "factions", mode="before")
    @classmethod
    def _missing_sections(cls, value: object) -> object:
        if value is None:
            return []
        return value
