########## Streamlit UI ##########
# Ten-Towns tracker: animated relationship web plus pass-through town tabs.

from __future__ import annotations

import time
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
import plotly.graph_objects as go
import streamlit as st
from streamlit_plotly_events import plotly_events

import sys

########## Path Setup ##########
# Ensures project root is importable when streamlit runs standalone.

# 1 Resolve project root two levels up for package imports.                 # steps
root_path = Path(__file__).resolve().parents[2]
if str(root_path) not in sys.path:
    # 2 Insert the root ahead of site-packages when missing.                 # steps
    sys.path.insert(0, str(root_path))

from tentowns.core import config
from tentowns.core.errors import LayoutError
from tentowns.core.simulation import ForceSimulation
from tentowns.core.types import BuildResult, Graph, NodeKinematics, SimulationState, StepResult, TownData
from tentowns.demo.town_demo import available_towns, build_town_graph, load_town

NODE_RADIUS_PX = 16


########## Session Setup ##########


def _init_session() -> None:
    """Create UI state once per browser session."""

    if "town" in st.session_state:
        return
    st.session_state.town = config.DEFAULT_TOWN
    st.session_state.tab = "npcs"
    st.session_state.mood_scene = config.MOOD_SCENES[0]["scene"]
    st.session_state.selected_npc = None
    st.session_state.simulation = None
    st.session_state.build = None
    st.session_state.town_data = None
    st.session_state.last_step = None
    st.session_state.loaded_town = None


def _remember_step(result: StepResult) -> None:
    st.session_state.last_step = result


def _ensure_simulation(town: str) -> None:
    """Swap in a fresh handle whenever the selected town changes."""

    # 1 Same town and a live handle: keep animating where we left off.         # steps
    if st.session_state.loaded_town == town and st.session_state.simulation is not None:
        return
    # 2 Throw away the old handle; layouts never carry across towns.           # steps
    previous: Optional[ForceSimulation] = st.session_state.simulation
    if previous is not None and previous.state != SimulationState.DISPOSED:
        previous.dispose()
    data = load_town(town)
    build = build_town_graph(data)
    simulation = ForceSimulation(build.graph).initialize()
    simulation.subscribe(_remember_step)
    st.session_state.town_data = data
    st.session_state.build = build
    st.session_state.simulation = simulation
    st.session_state.last_step = None
    st.session_state.selected_npc = None
    st.session_state.loaded_town = town


########## Controls ##########


def _render_sidebar_controls() -> None:
    """Town picker, tab picker, and layout restart."""

    towns = available_towns() or config.TOWNS
    with st.sidebar:
        st.markdown("### Ten-Towns")
        index = towns.index(st.session_state.town) if st.session_state.town in towns else 0
        st.session_state.town = st.selectbox("Select Town", towns, index=index)
        st.session_state.tab = st.radio(
            "View",
            config.STREAMLIT_TABS,
            index=config.STREAMLIT_TABS.index(st.session_state.tab),
            format_func=lambda name: name.capitalize(),
        )
        if st.button("Restart layout"):
            st.session_state.loaded_town = None


########## Relationship Web ##########


def _edge_traces(graph: Graph, positions: Dict[str, NodeKinematics]) -> List[go.Scatter]:
    """One line trace per edge colour, segments split with None."""

    # 1 Group segments by colour so plotly draws few traces.                    # steps
    segments: Dict[str, Dict[str, List[Optional[float]]]] = {}
    for edge in graph.edges:
        color = config.KIND_COLORS.get(edge.kind, config.DEFAULT_KIND_COLOR)
        bucket = segments.setdefault(color, {"x": [], "y": []})
        start = positions[edge.source]
        end = positions[edge.target]
        bucket["x"].extend([start.x, end.x, None])
        bucket["y"].extend([start.y, end.y, None])
    traces: List[go.Scatter] = []
    for color, bucket in segments.items():
        traces.append(
            go.Scatter(
                x=bucket["x"],
                y=bucket["y"],
                mode="lines",
                line=dict(color=color, width=2),
                hoverinfo="skip",
                showlegend=False,
            )
        )
    return traces


def _build_web_figure(graph: Graph, positions: Dict[str, NodeKinematics]) -> go.Figure:
    """Nodes coloured by role over relationship lines."""

    names = [node.name for node in graph.nodes]
    node_trace = go.Scatter(
        x=[positions[name].x for name in names],
        y=[positions[name].y for name in names],
        mode="markers+text",
        marker=dict(
            size=NODE_RADIUS_PX,
            color=[config.ROLE_COLORS.get(node.role, config.DEFAULT_ROLE_COLOR) for node in graph.nodes],
            line=dict(color="#1f1f1f", width=1),
        ),
        text=names,
        textposition="middle right",
        customdata=names,
        hovertext=[f"Motivation: {node.motivation}<br>Secret: {node.secret}" for node in graph.nodes],
        hoverinfo="text",
        showlegend=False,
    )
    bounds = st.session_state.simulation.layout.bounds
    fig = go.Figure(data=[*_edge_traces(graph, positions), node_trace])
    fig.update_layout(
        height=int(bounds.height),
        margin=dict(l=10, r=10, t=10, b=10),
        paper_bgcolor="#1b1f24",
        plot_bgcolor="#1b1f24",
        font=dict(color="#ffffff", size=12),
        xaxis=dict(range=[0, bounds.width], showgrid=False, zeroline=False, visible=False),
        yaxis=dict(range=[bounds.height, 0], showgrid=False, zeroline=False, visible=False, scaleanchor="x"),
        clickmode="event+select",
    )
    return fig


def _animate(simulation: ForceSimulation, graph: Graph) -> None:
    """Step once per frame until the layout cools, redrawing as we go."""

    # 1 Each frame advances a few ticks then redraws the placeholder.          # steps
    placeholder = st.empty()
    while simulation.state == SimulationState.RUNNING and not simulation.cooled:
        for _ in range(config.STREAMLIT_TICKS_PER_FRAME):
            simulation.step()
            if simulation.state != SimulationState.RUNNING:
                break
        placeholder.plotly_chart(_build_web_figure(graph, simulation.positions()), use_container_width=True)
        time.sleep(config.STREAMLIT_FRAME_SECONDS)
    # 2 Cooling is d3's stopping rule; freeze the handle for read-only display.# steps
    if simulation.state == SimulationState.RUNNING:
        simulation.stop()
    placeholder.empty()


def _render_npc_tab() -> None:
    """Relationship web, diagnostics, and the selected NPC's details."""

    simulation: ForceSimulation = st.session_state.simulation
    build: BuildResult = st.session_state.build
    st.markdown("### NPC Relationship Web")
    for diagnostic in build.diagnostics:
        st.warning(diagnostic.message)
    if not build.graph.nodes:
        st.write("No NPCs recorded for this town.")
        return
    _animate(simulation, build.graph)
    fig = _build_web_figure(build.graph, simulation.positions())
    selected_points = plotly_events(fig, click_event=True, hover_event=False, select_event=False, key="npc-web")
    for point in selected_points:
        custom = point.get("customdata")
        if custom:
            st.session_state.selected_npc = custom
            break
    last = st.session_state.last_step
    if last is not None:
        st.caption(f"{last.state.value} after {last.tick} ticks, energy {last.energy:.4f}")
    _render_selected_npc(build.graph)
    frame = pd.DataFrame(
        [{"NPC": item.name, "x": round(item.x, 1), "y": round(item.y, 1)} for item in simulation.positions().values()]
    )
    st.dataframe(frame, hide_index=True, use_container_width=True)


def _render_selected_npc(graph: Graph) -> None:
    name = st.session_state.selected_npc
    if not name:
        st.write("Click an NPC to see their motivation and secret.")
        return
    for node in graph.nodes:
        if node.name == name:
            st.markdown(f"**{node.name}** ({node.role})")
            st.write(f"Motivation: {node.motivation}")
            st.write(f"Secret: {node.secret}")
            ties = [f"{edge.kind} with {edge.target}" for edge in graph.edges if edge.source == name]
            if ties:
                st.write("Ties: " + ", ".join(ties))
            return


########## Pass-through Tabs ##########


def _render_list_tab(title: str, rows: List[Dict[str, object]], headline: str, details: List[str]) -> None:
    """Show fixture rows as-is; these tabs carry no logic of their own."""

    st.markdown(f"### {title}")
    if not rows:
        st.write("Nothing recorded yet.")
        return
    for row in rows:
        st.markdown(f"**{row.get(headline, '')}**")
        for key in details:
            if key in row:
                st.caption(f"{key.replace('_', ' ').capitalize()}: {row[key]}")


def _render_mood_tab() -> None:
    st.markdown("### Mood Generator")
    scenes = [mood["scene"] for mood in config.MOOD_SCENES]
    st.session_state.mood_scene = st.selectbox("Scene", scenes, index=scenes.index(st.session_state.mood_scene))
    mood = next(item for item in config.MOOD_SCENES if item["scene"] == st.session_state.mood_scene)
    audio_path = root_path / mood["audio"]
    image_path = root_path / mood["image"]
    if audio_path.exists():
        st.audio(str(audio_path))
    if image_path.exists():
        st.image(str(image_path), caption=mood["scene"])
    if not audio_path.exists() and not image_path.exists():
        st.caption(f"No media bundled for {mood['scene']}.")


def _render_active_tab() -> None:
    data: TownData = st.session_state.town_data
    tab = st.session_state.tab
    if tab == "npcs":
        _render_npc_tab()
    elif tab == "events":
        _render_list_tab("Events", data.events, "description", ["consequences", "roleplay_prompt"])
    elif tab == "rumours":
        _render_list_tab("Rumours", data.rumours, "text", ["chapter"])
    elif tab == "sacrifices":
        _render_list_tab("Sacrifices", data.sacrifices, "sacrifice", ["consequences", "hooks"])
    elif tab == "factions":
        _render_list_tab("Faction Influence", data.factions, "name", ["influence", "consequences"])
    else:
        _render_mood_tab()


def main() -> None:
    """Streamlit app entrypoint."""

    st.set_page_config(page_title="Ten-Towns Dynamic Tracker", layout="wide")
    st.title("Ten-Towns Dynamic Tracker")
    _init_session()
    _render_sidebar_controls()
    try:
        _ensure_simulation(st.session_state.town)
    except (FileNotFoundError, LayoutError) as error:
        st.error(f"Could not load {st.session_state.town}: {error}")
        return
    _render_active_tab()


if __name__ == "__main__":
    main()
