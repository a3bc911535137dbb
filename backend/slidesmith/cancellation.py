from __future__ import annotations

import threading

from slidesmith.errors import CancellationError


class CancellationToken:
    """Pollable cancellation flag checked between pipeline phases.

    Cancelling never interrupts work in progress; the pipeline observes the
    flag at its next checkpoint.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: str | None = None

    def cancel(self, reason: str | None = None) -> None:
        if not self._event.is_set():
            self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def raise_if_cancelled(self, phase: str | None = None) -> None:
        if self._event.is_set():
            message = "Generation cancelled"
            if self._reason:
                message = f"{message}: {self._reason}"
            raise CancellationError(message, phase=phase)

    @classmethod
    def cancelled_token(cls, reason: str | None = None) -> "CancellationToken":
        token = cls()
        token.cancel(reason)
        return token
