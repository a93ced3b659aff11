########## Database Utilities ##########
# SQLite event log for layout runs and builder diagnostics.

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from sqlalchemy import Engine, create_engine, text

from . import config

_ENGINE: Optional[Engine] = None
_ENGINE_PATH: Optional[Path] = None


def _db_path() -> Path:
    """Return the configured sqlite path and ensure its directory exists."""

    # 1 Resolve the configured path under the project workspace.               # steps
    # 2 Create parent directories when needed.                                 # steps
    path = Path(config.DB_FILE).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def get_engine() -> Engine:
    """Create or reuse the SQLAlchemy engine for the configured file."""

    # 1 Rebuild when config.DB_FILE moved since the last call (tests do this). # steps
    global _ENGINE, _ENGINE_PATH
    path = _db_path()
    if _ENGINE is None or _ENGINE_PATH != path:
        if _ENGINE is not None:
            _ENGINE.dispose()
        _ENGINE = create_engine(f"sqlite:///{path}", echo=config.DB_ECHO, future=True)
        _ENGINE_PATH = path
    return _ENGINE


def ensure_schema() -> None:
    """Create tables when they do not exist."""

    engine = get_engine()
    with engine.begin() as connection:
        connection.execute(
            text(
                """
                CREATE TABLE IF NOT EXISTS event_log (
                    event_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    town TEXT,
                    handle_id TEXT,
                    type TEXT,
                    data TEXT,
                    ts TEXT
                )
                """
            )
        )


def log_event(
    town: Optional[str],
    handle_id: Optional[str],
    event_type: str,
    data_json: str,
    timestamp: Optional[datetime] = None,
) -> None:
    """Persist one structured event row."""

    # 1 Insert a row with explicit parameters.                                # steps
    ensure_schema()
    engine = get_engine()
    statement = text(
        """
        INSERT INTO event_log (town, handle_id, type, data, ts)
        VALUES (:town, :handle_id, :type, :data, :ts)
        """
    )
    parameters = {
        "town": town,
        "handle_id": handle_id,
        "type": event_type,
        "data": data_json,
        "ts": (timestamp or datetime.utcnow()).isoformat(),
    }
    with engine.begin() as connection:
        connection.execute(statement, parameters)


def fetch_events(limit: Optional[int] = None, event_type: Optional[str] = None) -> List[Dict[str, str]]:
    """Return events oldest first, optionally only the newest `limit` rows."""

    # 1 Query newest first so LIMIT keeps recent rows, then flip the order.   # steps
    ensure_schema()
    engine = get_engine()
    query = "SELECT town, handle_id, type, data, ts FROM event_log"
    params: Dict[str, object] = {}
    if event_type is not None:
        query += " WHERE type = :type"
        params["type"] = event_type
    query += " ORDER BY event_id DESC"
    if limit is not None:
        query += " LIMIT :limit"
        params["limit"] = limit
    with engine.begin() as connection:
        rows = connection.execute(text(query), params).mappings().all()
    payloads: List[Dict[str, str]] = []
    for row in rows:
        payloads.append(
            {
                "town": row["town"],
                "handle_id": row["handle_id"],
                "type": row["type"],
                "data": row["data"],
                "ts": row["ts"],
            }
        )
    payloads.reverse()
    return payloads
