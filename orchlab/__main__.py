from __future__ import annotations

from orchlab.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
