"""PySide6 client adapters for the orchlab engine.

This package is a *client* of the headless core:

- Core stays UI-agnostic (no Qt imports under `orchlab/`).
- Here, QTimer drives the playback and retry clocks and QObject bridges
  re-publish engine observers as Qt signals.

Run the console player from source:

    python -m orchlab_ui --scenario examples/search_mapreduce.json
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
