from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from orchlab.model import Scenario


@pytest.fixture(scope="session", autouse=True)
def _qt_offscreen() -> None:
    """Ensure Qt can initialize in CI/headless environments."""

    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(scope="session", autouse=True)
def _add_repo_root_to_syspath() -> None:
    """Make local packages importable when running tests from `tests/`.

    Ensure the repo root is on `sys.path` so `import runner` works.
    """

    root = Path(__file__).resolve().parents[1]
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


@pytest.fixture
def abc_raw() -> dict:
    # A(2) fans out to B(3) and C(1).
    return {
        "id": "abc",
        "tasks": [
            {"id": "A", "duration": 2},
            {"id": "B", "duration": 3, "dependencies": ["A"]},
            {"id": "C", "duration": 1, "dependencies": ["A"]},
        ],
    }


@pytest.fixture
def abc(abc_raw: dict) -> Scenario:
    return Scenario.from_json(abc_raw)


@pytest.fixture
def examples_dir() -> Path:
    return Path(__file__).resolve().parents[1] / "examples"
