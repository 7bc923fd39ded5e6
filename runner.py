from __future__ import annotations

"""Repo-root convenience shim for the Qt console player.

    python runner.py --scenario examples/coordination.json

It delegates to the canonical entry point:

    python -m orchlab_ui
"""

import sys


def main() -> int:
    """Launch the player; arguments are forwarded as in `python -m orchlab_ui`."""

    from orchlab_ui.__main__ import main as ui_main

    sys.argv = ["orchlab_ui", *sys.argv[1:]]

    return ui_main()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
