from __future__ import annotations
import threading


class CancellationToken:
    """Cooperative stop signal checked between messages and chunks."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
