from __future__ import annotations

from typing import Callable

from PySide6.QtCore import QObject, QTimer, Slot


class QtTicker(QObject):
    """`orchlab.clock.Ticker` on a single repeating QTimer owned by this object."""

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._callback: Callable[[], None] | None = None
        self._timer = QTimer(self)
        self._timer.timeout.connect(self._on_timeout)

    def start(self, interval_ms: float, callback: Callable[[], None]) -> None:
        # Only one timer exists, so restarting replaces any previous schedule.
        self._timer.stop()
        self._callback = callback
        self._timer.setInterval(max(1, int(round(interval_ms))))
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()
        self._callback = None

    def is_active(self) -> bool:
        return self._timer.isActive()

    def interval_ms(self) -> int:
        return self._timer.interval()

    @Slot()
    def _on_timeout(self) -> None:
        cb = self._callback
        if cb is not None:
            cb()


class QtTimerHandle:
    def __init__(self, timer: QTimer) -> None:
        self._timer: QTimer | None = timer

    def is_pending(self) -> bool:
        return self._timer is not None

    def cancel(self) -> None:
        timer = self._release()
        if timer is not None:
            timer.stop()

    def _release(self) -> QTimer | None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.deleteLater()
        return timer


class QtDelayScheduler(QObject):
    """`orchlab.clock.DelayScheduler` using one single-shot QTimer per call."""

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> QtTimerHandle:
        timer = QTimer(self)
        timer.setSingleShot(True)
        handle = QtTimerHandle(timer)

        def _fire() -> None:
            if handle._release() is None:
                return
            callback()

        timer.timeout.connect(_fire)
        timer.start(max(0, int(round(delay_ms))))
        return handle
