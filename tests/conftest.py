"""
Shared pytest fixtures.

Every test that touches the database gets a clean temporary DATA_DIR via the
`tmp_data_dir` fixture so tests are fully isolated from each other and from
the real enrichment.db.
"""
from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# ── Make the project root importable without installing the package ────────────
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(autouse=True)
def tmp_data_dir(tmp_path, monkeypatch):
    """
    Redirect DATA_DIR to a fresh tmp directory for every test.
    This gives each test a clean SQLite file and prevents cross-test pollution.
    """
    data = tmp_path / "data"
    data.mkdir()
    monkeypatch.setenv("DATA_DIR", str(data))

    import config
    monkeypatch.setattr(config, "DATA_DIR", data)

    # Patch the module-level DB_PATH that was already computed at import time
    import database
    monkeypatch.setattr(database, "DB_PATH", str(data / "enrichment.db"))
    monkeypatch.setattr(database, "_DATA_DIR", data)

    # Also reset the internal lock so tests don't share state
    import asyncio
    monkeypatch.setattr(database, "_lock", asyncio.Lock())

    yield data


# ── aiohttp fakes ──────────────────────────────────────────────────────────────

def fake_response(status: int = 200, json_data=None, text: str = "") -> MagicMock:
    """Build a fake aiohttp response usable as `async with session.get(...) as resp`."""
    mock_resp = MagicMock()
    mock_resp.status = status
    mock_resp.json = AsyncMock(return_value=json_data if json_data is not None else {})
    mock_resp.text = AsyncMock(return_value=text)
    mock_resp.__aenter__ = AsyncMock(return_value=mock_resp)
    mock_resp.__aexit__ = AsyncMock(return_value=False)
    return mock_resp


def fake_session(*responses: MagicMock) -> MagicMock:
    """
    Fake aiohttp.ClientSession. get/post return the given responses in order
    (the last one repeats once the list is exhausted).
    """
    queue = list(responses)

    def _next(*args, **kwargs):
        return queue.pop(0) if len(queue) > 1 else queue[0]

    mock_session = MagicMock()
    mock_session.get = MagicMock(side_effect=_next)
    mock_session.post = MagicMock(side_effect=_next)
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=False)
    return mock_session
