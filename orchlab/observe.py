from __future__ import annotations

from typing import Callable, Generic, TypeVar

T = TypeVar("T")

_UNSET = object()


class Observable(Generic[T]):
    """Subscriber list that only notifies when the published value changes."""

    def __init__(self) -> None:
        self._subscribers: dict[int, Callable[[T], None]] = {}
        self._next_id = 1
        self._last: object = _UNSET

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        sub_id = self._next_id
        self._next_id += 1
        self._subscribers[sub_id] = callback

        def unsubscribe() -> None:
            self._subscribers.pop(sub_id, None)

        return unsubscribe

    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, value: T) -> bool:
        if self._last is not _UNSET and self._last == value:
            return False
        self._last = value
        # Copy: callbacks may unsubscribe while we iterate.
        for cb in list(self._subscribers.values()):
            cb(value)
        return True
