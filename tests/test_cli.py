from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import uvicorn
from fastapi import FastAPI

from apicus.__main__ import main

ROOT = Path(__file__).resolve().parents[1]


def test_main_serves_app_with_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    """Hand a configured app and bind address to uvicorn."""
    calls: list[dict[str, Any]] = []

    def fake_run(app: Any, **kwargs: Any) -> None:
        calls.append({"app": app, **kwargs})

    monkeypatch.setattr(uvicorn, "run", fake_run)

    main(["--port", "9001", "--catalog-root", str(ROOT)])

    assert len(calls) == 1
    assert isinstance(calls[0]["app"], FastAPI)
    assert calls[0]["host"] == "127.0.0.1"
    assert calls[0]["port"] == 9001
