from __future__ import annotations

import threading


class CancellationToken:
    """Job-scoped cancellation flag.

    Checked cooperatively between OCR round-trips. Safe to cancel from
    another thread or a signal handler.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
