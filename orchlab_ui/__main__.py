from __future__ import annotations

import sys


def main() -> int:
    """Entry point for `python -m orchlab_ui`."""

    try:
        from orchlab_ui.player import run_player
    except ImportError as e:  # pragma: no cover
        sys.stderr.write(
            "orchlab_ui requires PySide6. Install it (e.g. `pip install PySide6`)\n"
        )
        sys.stderr.write(f"ImportError: {e}\n")
        return 2

    return run_player(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(main())
