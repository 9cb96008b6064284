"""
Single-resolution completion cell with fan-out awaiting.

The cell is written at most once (``settle`` or ``fail``); every later write
is ignored. Done-callbacks fire exactly once at settlement, and any number of
coroutines may ``await`` the cell, each observing the same outcome.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Generator, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FutureNotSettled(RuntimeError):
    """Raised when reading the outcome of a future that is still pending."""


class FutureState(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class CompletionFuture(Generic[T]):
    def __init__(self) -> None:
        self._state = FutureState.PENDING
        self._value: T | None = None
        self._error: BaseException | None = None
        self._callbacks: list[Callable[[CompletionFuture[T]], Any]] = []

    def __repr__(self) -> str:
        return f"<CompletionFuture state={self._state.value}>"

    @property
    def state(self) -> FutureState:
        return self._state

    @property
    def value(self) -> T | None:
        return self._value

    @property
    def error(self) -> BaseException | None:
        return self._error

    def done(self) -> bool:
        return self._state is not FutureState.PENDING

    def result(self) -> T:
        """Return the settled value, or raise the stored error."""
        if self._state is FutureState.PENDING:
            raise FutureNotSettled("Future has not settled yet")
        if self._state is FutureState.REJECTED:
            if self._error is None:
                raise RuntimeError("Rejected future has no stored error")
            raise self._error
        return self._value  # type: ignore[return-value]

    def settle(self, value: T) -> bool:
        if self.done():
            return False
        self._value = value
        self._state = FutureState.RESOLVED
        logger.debug("Future resolved with %r", value)
        self._run_callbacks()
        return True

    def fail(self, error: BaseException) -> bool:
        if not isinstance(error, BaseException):
            raise TypeError(f"fail() expects an exception, got {type(error).__name__}")
        if self.done():
            return False
        self._error = error
        self._state = FutureState.REJECTED
        logger.debug("Future rejected with %r", error)
        self._run_callbacks()
        return True

    def add_done_callback(self, callback: Callable[[CompletionFuture[T]], Any]) -> None:
        if self.done():
            callback(self)
            return
        self._callbacks.append(callback)

    def remove_done_callback(self, callback: Callable[[CompletionFuture[T]], Any]) -> int:
        kept = [cb for cb in self._callbacks if cb != callback]
        removed = len(self._callbacks) - len(kept)
        self._callbacks = kept
        return removed

    def _run_callbacks(self) -> None:
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback(self)
            except Exception:
                logger.exception("Done-callback %r raised during settlement", callback)

    def __await__(self) -> Generator[Any, None, T]:
        if not self.done():
            waiter = asyncio.get_running_loop().create_future()

            def _wake(_: CompletionFuture[T]) -> None:
                if not waiter.done():
                    waiter.set_result(None)

            self.add_done_callback(_wake)
            try:
                yield from waiter.__await__()
            finally:
                self.remove_done_callback(_wake)
        return self.result()
