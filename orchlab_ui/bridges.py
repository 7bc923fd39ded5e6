from __future__ import annotations

"""QObject adapters that turn engine observers into Qt signals.

The bridges are the visualization boundary: scenario errors are caught here
and reported through `failed` so a view can show an inline failure state
instead of taking the page down.
"""

import random
from typing import Any

from PySide6.QtCore import QObject, Signal, Slot

from orchlab.playback import PlaybackController, PlaybackSnapshot
from orchlab.retry import RandomSource, RetryConfig, RetrySimulator, RetrySnapshot
from orchlab.validate import ScenarioError, load_scenario
from orchlab_ui.qt_timers import QtDelayScheduler, QtTicker


class PlaybackBridge(QObject):
    snapshot_changed = Signal(object)  # PlaybackSnapshot
    states_changed = Signal(object)  # dict[task_id, state]
    messages_changed = Signal(object)  # list[message_id]
    failed = Signal(str)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._ticker = QtTicker(self)
        self._controller: PlaybackController | None = None
        self._unsubscribe = None
        self._last_states: dict[str, str] | None = None
        self._last_messages: list[str] | None = None

    def controller(self) -> PlaybackController | None:
        return self._controller

    def load(
        self,
        raw: dict[str, Any],
        *,
        strategy: str = "parallel",
        concurrency_limit: int | None = None,
        tick_ms: float = 50.0,
    ) -> bool:
        self.unload()
        try:
            scenario = load_scenario(raw)
            controller = PlaybackController(
                scenario,
                ticker=self._ticker,
                strategy=strategy,
                concurrency_limit=concurrency_limit,
                tick_ms=tick_ms,
            )
        except ScenarioError as e:
            self.failed.emit(str(e))
            return False

        self._controller = controller
        self._unsubscribe = controller.subscribe(self._on_snapshot)
        self._on_snapshot(controller.snapshot())
        return True

    @Slot()
    def unload(self) -> None:
        if self._controller is None:
            return
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._controller.close()
        self._controller = None
        self._unsubscribe = None
        self._last_states = None
        self._last_messages = None

    def _on_snapshot(self, snapshot: PlaybackSnapshot) -> None:
        controller = self._controller
        if controller is None:
            return
        self.snapshot_changed.emit(snapshot)

        states = controller.task_states()
        if states != self._last_states:
            self._last_states = states
            self.states_changed.emit(states)

        messages = controller.visible_messages()
        if messages != self._last_messages:
            self._last_messages = messages
            self.messages_changed.emit(messages)


class RetryBridge(QObject):
    snapshot_changed = Signal(object)  # RetrySnapshot

    def __init__(
        self,
        config: RetryConfig,
        *,
        rng: RandomSource | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._scheduler = QtDelayScheduler(self)
        self._simulator = RetrySimulator(
            config,
            scheduler=self._scheduler,
            rng=rng if rng is not None else random.Random(),
        )
        self._unsubscribe = self._simulator.subscribe(self._on_snapshot)

    def simulator(self) -> RetrySimulator:
        return self._simulator

    @Slot()
    def start(self) -> None:
        self._simulator.start()

    @Slot()
    def reset(self) -> None:
        self._simulator.reset()

    @Slot()
    def shutdown(self) -> None:
        self._unsubscribe()
        self._simulator.close()

    def _on_snapshot(self, snapshot: RetrySnapshot) -> None:
        self.snapshot_changed.emit(snapshot)
