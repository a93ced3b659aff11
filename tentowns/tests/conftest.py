########## Test Fixtures ##########
# Keeps run logs, sqlite files, and exports inside each test's tmp_path.

from __future__ import annotations

import pytest

from tentowns.core import config


@pytest.fixture(autouse=True)
def isolated_outputs(tmp_path, monkeypatch) -> None:
    """Redirect every file the engine writes away from the repository."""

    # 1 Point log, db, and export settings at the per-test directory.          # steps
    monkeypatch.setattr(config, "LOG_TEXT_DIR", str(tmp_path / "logs"))
    monkeypatch.setattr(config, "DB_FILE", str(tmp_path / "events.sqlite"))
    monkeypatch.setattr(config, "DEFAULT_LAYOUT_EXPORT", str(tmp_path / "exports"))
