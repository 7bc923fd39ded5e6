from __future__ import annotations

from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
MAX_LINES = 400


def _project_py_files() -> list[Path]:
    files = [ROOT / "runner.py"]
    for pkg in ("orchlab", "orchlab_ui", "tests"):
        files.extend(
            p for p in (ROOT / pkg).rglob("*.py") if "__pycache__" not in p.parts
        )
    return sorted(files)


def _rel(p: Path) -> str:
    return str(p.relative_to(ROOT)).replace("\\", "/")


def test_all_python_files_are_at_most_400_lines() -> None:
    """Maintainability guardrail: modules stay small and focused."""

    offenders = [
        (_rel(p), n)
        for p in _project_py_files()
        if (n := len(p.read_text(encoding="utf-8").splitlines())) > MAX_LINES
    ]
    assert not offenders, (
        f"Python files must be <= {MAX_LINES} lines. Offenders:\n"
        + "\n".join(f"- {path}: {n}" for path, n in offenders)
    )


@pytest.mark.parametrize("pkg", ["orchlab", "orchlab_ui"])
def test_package_modules_use_postponed_annotations(pkg: str) -> None:
    missing = [
        _rel(p)
        for p in (ROOT / pkg).rglob("*.py")
        if "from __future__ import annotations" not in p.read_text(encoding="utf-8")
    ]
    assert not missing, f"missing `from __future__ import annotations`: {missing}"
