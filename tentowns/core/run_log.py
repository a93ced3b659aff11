########## Text Logging ##########
# Rolling, human-readable run log for simulation lifecycles and builder findings.

from __future__ import annotations

from collections import deque
from datetime import datetime
from pathlib import Path

from . import config


def log_path() -> Path:
    """Resolve the configured log file, relative paths anchored at the repo root."""

    log_dir = Path(config.LOG_TEXT_DIR)
    if not log_dir.is_absolute():
        log_dir = Path(__file__).resolve().parents[2] / log_dir
    return log_dir / config.LOG_TEXT_FILENAME


def log_run_event(message: str) -> None:
    """Record one line and roll the file over to the newest entries."""

    if not config.LOG_TEXT_ENABLED:
        return
    # 1 Multi-line messages are folded so every entry stays on one line.      # steps
    entry = f"[{datetime.utcnow().isoformat()}] {' | '.join(message.splitlines())}\n"
    path = log_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(entry)
    # 2 Roll only once the cap is exceeded; the tail is streamed, not slurped. # steps
    _roll_log(path, config.LOG_TEXT_MAX_LINES)


def _roll_log(path: Path, keep: int) -> None:
    if keep <= 0:
        return
    with path.open("r", encoding="utf-8") as handle:
        tail = deque(handle, maxlen=keep + 1)
    if len(tail) <= keep:
        return
    tail.popleft()
    with path.open("w", encoding="utf-8") as handle:
        handle.writelines(tail)
