from __future__ import annotations

from pathlib import Path

########## Core Config ##########
# Houses runtime constants for the Ten-Towns relationship web.

########## Variable Controls ##########
# All tweakable knobs live here so you can tune the layout without code changes.

# Canvas
CANVAS_WIDTH: float = 800.0
CANVAS_HEIGHT: float = 600.0

# Link force
LINK_DISTANCE: float = 60.0  # target separation between related NPCs
LINK_STRENGTH: float | None = None  # None -> 1 / min(degree(source), degree(target))
KIND_STRENGTHS: dict[str, float] = {}  # e.g. {"rivalry": 0.5}; missing kinds use 1.0

# Many-body force
REPULSION_STRENGTH: float = -30.0
MIN_DISTANCE: float = 1.0
JIGGLE_SCALE: float = 1e-6  # size of the nudge that splits coincident nodes

# Centering force
CENTER_STRENGTH: float = 1.0

# Integration and cooling
VELOCITY_DECAY: float = 0.9  # share of velocity kept each tick
ALPHA_START: float = 1.0
ALPHA_MIN: float = 0.001
ALPHA_TARGET: float = 0.0
ALPHA_DECAY: float = 1 - ALPHA_MIN ** (1 / 300)  # cools to ALPHA_MIN in ~300 ticks

# Placement
RANDOM_SEED: int = 202410
PLACEMENT: str = "random"  # "random" or "phyllotaxis"
INITIAL_RADIUS: float = 10.0  # phyllotaxis spacing, matches d3
RANDOM_PLACEMENT_RADIUS: float = 150.0

# Run caps
ENERGY_THRESHOLD: float = 0.01
MAX_TICKS_PER_RUN: int = 300

# Town fixtures
SEED_DIR: str = str(Path(__file__).resolve().parents[1] / "demo" / "seeds")
DEFAULT_TOWN: str = "Bryn Shander"
TOWNS: list[str] = ["Bryn Shander", "Easthaven"]

# Logging and debug
DEBUG_VERBOSE: bool = False  # logs every tick when on
LOG_TEXT_ENABLED: bool = True  # toggle human-readable run log
LOG_TEXT_DIR: str = "logs"
LOG_TEXT_FILENAME: str = "tentowns.log"
LOG_TEXT_MAX_LINES: int = 800
DEFAULT_LAYOUT_EXPORT: str = "tentowns/demo/run_logs"
DEFAULT_LAYOUT_FILENAME_TEMPLATE: str = "layout_{town}_{timestamp}.json"

DB_FILE: str = str(Path("tentowns/runtime_data/tracker_events.sqlite"))
DB_ECHO: bool = False

# Streamlit
STREAMLIT_FRAME_SECONDS: float = 0.03
STREAMLIT_TICKS_PER_FRAME: int = 3
STREAMLIT_TABS: list[str] = ["npcs", "events", "rumours", "sacrifices", "factions", "mood"]
ROLE_COLORS: dict[str, str] = {"Speaker": "blue", "Merchant": "gray"}
DEFAULT_ROLE_COLOR: str = "purple"
KIND_COLORS: dict[str, str] = {"rivalry": "red"}
DEFAULT_KIND_COLOR: str = "green"
MOOD_SCENES: list[dict[str, str]] = [
    {"scene": "Tundra", "audio": "assets/mood/blizzard.mp3", "image": "assets/mood/tundra.png"},
    {"scene": "Tavern", "audio": "assets/mood/tavern_ambience.mp3", "image": "assets/mood/tavern.png"},
    {"scene": "Auril Temple", "audio": "assets/mood/auril_chant.mp3", "image": "assets/mood/auril_temple.png"},
]
