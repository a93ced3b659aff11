########## Engine API ##########
# FastAPI server exposing graph building and layout handles to other clients.

from __future__ import annotations

from typing import Any, Dict, List, Optional, Set

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..core import config
from ..core.errors import GraphBuildError, LayoutError, LifecycleError
from ..core.graph_model import build_graph
from ..core.simulation import ForceSimulation
from ..core.types import (
    BuildPolicy,
    Diagnostic,
    EntityRecord,
    FinalLayout,
    Graph,
    LayoutConfig,
    NodeKinematics,
    SimulationState,
    StepResult,
)
from ..demo.town_demo import layout_town

app = FastAPI(title="Ten-Towns Layout API", version="0.1.0")
_simulations: Dict[str, ForceSimulation] = {}
_disposed: Set[str] = set()  # ids only; the handle and its graph are released


########## Request / Response Bodies ##########


class BuildRequest(BaseModel):
    """Entities plus layout settings for a new simulation."""

    entities: List[EntityRecord]
    policy: BuildPolicy = BuildPolicy.LENIENT
    layout: LayoutConfig = Field(default_factory=LayoutConfig)


class RunRequest(BaseModel):
    max_ticks: int = Field(default=config.MAX_TICKS_PER_RUN, ge=1)
    energy_threshold: float = Field(default=config.ENERGY_THRESHOLD, ge=0)


class LayoutRequest(BuildRequest, RunRequest):
    """One-shot build and blocking run."""


class SimulationCreated(BaseModel):
    handle_id: str
    graph: Graph
    diagnostics: List[Diagnostic]


class LayoutResponse(BaseModel):
    graph: Graph
    diagnostics: List[Diagnostic]
    layout: FinalLayout


########## Error Mapping ##########


@app.exception_handler(LayoutError)
async def _layout_error(request: Request, error: LayoutError) -> JSONResponse:
    """Turn engine failures into structured JSON bodies."""

    # 1 Builder refusals are bad input, lifecycle misuse is a conflict.        # steps
    status = 400
    if isinstance(error, GraphBuildError):
        status = 422
    elif isinstance(error, LifecycleError):
        status = 409
    return JSONResponse(status_code=status, content=error.as_payload())


def _lookup(handle_id: str, operation: str) -> ForceSimulation:
    if handle_id in _disposed:
        raise LifecycleError(handle_id, SimulationState.DISPOSED, operation)
    simulation = _simulations.get(handle_id)
    if simulation is None:
        raise HTTPException(status_code=404, detail=f"unknown simulation '{handle_id}'")
    return simulation


########## Routes ##########


@app.post("/layout")
def layout(request: LayoutRequest) -> LayoutResponse:
    """Build the graph and run it to completion in one call."""

    # 1 Build, run, dispose; nothing is kept in the registry.                   # steps
    result = build_graph(request.entities, request.policy)
    simulation = ForceSimulation(result.graph, request.layout).initialize()
    final = simulation.run(request.max_ticks, request.energy_threshold)
    simulation.dispose()
    return LayoutResponse(graph=result.graph, diagnostics=result.diagnostics, layout=final)


@app.post("/simulations")
def create_simulation(request: BuildRequest) -> SimulationCreated:
    """Build the graph and keep a running handle for step-wise clients."""

    result = build_graph(request.entities, request.policy)
    simulation = ForceSimulation(result.graph, request.layout).initialize()
    _simulations[simulation.handle_id] = simulation
    return SimulationCreated(handle_id=simulation.handle_id, graph=result.graph, diagnostics=result.diagnostics)


@app.post("/simulations/{handle_id}/step")
def step_simulation(handle_id: str) -> StepResult:
    """Advance one tick; renderers call this once per frame."""

    return _lookup(handle_id, "step").step()


@app.post("/simulations/{handle_id}/run")
def run_simulation(handle_id: str, request: Optional[RunRequest] = None) -> FinalLayout:
    """Run the handle until it converges or exhausts the tick budget."""

    request = request or RunRequest()
    return _lookup(handle_id, "run").run(request.max_ticks, request.energy_threshold)


@app.get("/simulations/{handle_id}/positions")
def simulation_positions(handle_id: str) -> Dict[str, NodeKinematics]:
    return _lookup(handle_id, "read positions of").positions()


@app.delete("/simulations/{handle_id}")
def dispose_simulation(handle_id: str) -> Dict[str, Any]:
    """Dispose the handle; only its id is remembered so later calls get a 409."""

    simulation = _lookup(handle_id, "dispose")
    simulation.dispose()
    del _simulations[handle_id]
    _disposed.add(handle_id)
    return {"handle_id": handle_id, "state": simulation.state.value}


@app.get("/towns/{town}/layout")
def town_layout(town: str) -> LayoutResponse:
    """Lay out a bundled town fixture."""

    try:
        result, final = layout_town(town)
    except FileNotFoundError as error:
        raise HTTPException(status_code=404, detail=f"no fixture for town '{town}'") from error
    return LayoutResponse(graph=result.graph, diagnostics=result.diagnostics, layout=final)
