"""Single-assignment completion signal for one run.

Exactly one terminal outcome may be recorded per run: the first writer wins.
A second attempt raises instead of silently replacing the outcome, so a
workflow that reaches both `Respond` and `Suspend` is caught rather than
answered twice.
"""

from __future__ import annotations

import threading
from typing import Generic, TypeVar

T = TypeVar("T")


class CompletionAlreadyResolved(RuntimeError):
    pass


class CompletionSignal(Generic[T]):
    def __init__(self, run_name: str) -> None:
        self.run_name = run_name
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._value: T | None = None
        self._error: BaseException | None = None

    def done(self) -> bool:
        return self._done.is_set()

    def resolve(self, value: T) -> None:
        with self._lock:
            self._check_unresolved()
            self._value = value
            self._done.set()

    def fail(self, error: BaseException) -> None:
        with self._lock:
            self._check_unresolved()
            self._error = error
            self._done.set()

    def _check_unresolved(self) -> None:
        if self._done.is_set():
            raise CompletionAlreadyResolved(f"Run {self.run_name} already completed")

    def wait(self, timeout: float | None = None) -> T:
        """Block until the run completes; re-raise its failure if it failed."""

        if not self._done.wait(timeout):
            raise TimeoutError(f"Run {self.run_name} did not complete within {timeout}s")
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]
