# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest fixtures for suite",
#   "sections": [
#     {
#       "id": "isolate-settings",
#       "name": "_isolate_settings",
#       "anchor": "function-isolate-settings",
#       "kind": "function"
#     },
#     {
#       "id": "adapter-settings",
#       "name": "adapter_settings",
#       "anchor": "function-adapter-settings",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

This module configures shared pytest behaviour: ``src`` on ``sys.path`` for
checkouts that were not installed, settings isolation between tests, and the
HTTP mocking fixtures used across the adapter and middleware suites.

Usage:
    pytest tests/http_adapter
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Generator

import pytest

# --- Globals ---

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ClientRuntime.HttpAdapter.settings import AdapterSettings, reset_settings  # noqa: E402

from tests.fixtures.http_mocking import (  # noqa: E402,F401
    http_mock,
    recording_transport,
)


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop cached settings and CLIENTRUNTIME_* overrides around each test."""
    for name in list(os.environ):
        if name.startswith("CLIENTRUNTIME_"):
            monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def adapter_settings() -> AdapterSettings:
    """Settings with request logging off and immediate retries."""
    return AdapterSettings(
        logging={"log_requests": False},
        retry={"max_retries": 2, "delay": 0.0, "max_delay": 0.0},
    )
