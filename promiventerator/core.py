"""
Promiventerator: a future that is also an event emitter and a replayable
async event sequence.

Example::

    async def producer(settle, fail):
        await pv.emit("progress", 50)
        await pv.emit("complete")
        settle("done")

    pv = Promiventerator(producer)
    pv.on("progress", lambda value: print("progress", value))

    async for event in pv:
        print(event)        # ("progress", 50), then ("complete",)

    print(await pv)         # "done"
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Generator, Generic, TypeVar

from .config import EmitterConfig
from .consumers import ConsumerRegistry, SequenceConsumer
from .dispatcher import EventDispatcher, PendingDispatch
from .events import NO_PAYLOAD, EventName, EventReceiver, EventRecord, make_event
from .future import CompletionFuture, FutureState
from .history import EventHistory

logger = logging.getLogger(__name__)

ReturnT = TypeVar("ReturnT")

SettleFn = Callable[[Any], None]
FailFn = Callable[[BaseException], None]
Producer = Callable[[SettleFn, FailFn], Any]


class Promiventerator(Generic[ReturnT]):
    """
    Single-resolution future, multicast event emitter and replayable event
    sequence in one object.

    The producer is called synchronously with ``(settle, fail)``. If it
    returns an awaitable, that awaitable is scheduled as a task and an
    exception escaping it fails the future.

    ``close(value)`` on any traversal settles the future with ``value`` when
    it is still pending.
    """

    def __init__(self, producer: Producer, config: EmitterConfig | None = None):
        self.config = config or EmitterConfig()
        self._completion: CompletionFuture[ReturnT] = CompletionFuture()
        self._dispatcher = EventDispatcher()
        self._history = EventHistory(warn_threshold=self.config.history_warn_threshold)
        self._consumers = ConsumerRegistry()
        self._producer_task: asyncio.Future[Any] | None = None

        try:
            maybe = producer(self._settle, self._fail)
        except Exception as exc:
            self._completion.fail(exc)
            return
        if inspect.isawaitable(maybe):
            self._producer_task = asyncio.ensure_future(maybe)
            self._producer_task.add_done_callback(self._on_producer_done)

    def __repr__(self) -> str:
        return (
            f"<Promiventerator state={self.state.value} events={len(self._history)} "
            f"consumers={len(self._consumers)}>"
        )

    def _settle(self, value: Any) -> None:
        self._completion.settle(value)

    def _fail(self, error: BaseException) -> None:
        self._completion.fail(error)

    def _on_producer_done(self, task: asyncio.Future[Any]) -> None:
        if task.cancelled():
            logger.debug("Producer task was cancelled")
            return
        exc = task.exception()
        if exc is None:
            return
        if not self._completion.fail(exc):
            logger.debug("Producer raised %r after the future had settled", exc)

    # -- future -------------------------------------------------------------

    @property
    def state(self) -> FutureState:
        return self._completion.state

    @property
    def is_done(self) -> bool:
        return self._completion.done()

    @property
    def value(self) -> ReturnT | None:
        return self._completion.value

    @property
    def error(self) -> BaseException | None:
        return self._completion.error

    def __await__(self) -> Generator[Any, None, ReturnT]:
        return self._completion.__await__()

    # -- events -------------------------------------------------------------

    def on(self, event_name: EventName, fn: EventReceiver) -> Promiventerator[ReturnT]:
        self._dispatcher.add(event_name, fn)
        return self

    def once(self, event_name: EventName, fn: EventReceiver) -> Promiventerator[ReturnT]:
        self._dispatcher.add(event_name, fn, once=True)
        return self

    def off(self, event_name: EventName, fn: EventReceiver) -> Promiventerator[ReturnT]:
        self._dispatcher.remove(event_name, fn)
        return self

    def listener_count(self, event_name: EventName) -> int:
        return self._dispatcher.listener_count(event_name)

    def emit(self, event_name: EventName, payload: Any = NO_PAYLOAD) -> PendingDispatch:
        """
        Record and deliver an event.

        History, traversals and listeners are all updated before this returns;
        await the result to wait for asynchronous listeners. It yields True if
        at least one listener was registered for ``event_name``.
        """
        record = make_event(event_name, payload)
        self._history.append(record)
        self._consumers.broadcast(record)
        return self._dispatcher.dispatch(record)

    # -- traversal ----------------------------------------------------------

    @property
    def history(self) -> list[EventRecord]:
        return self._history.snapshot()

    @property
    def active_consumers(self) -> int:
        return len(self._consumers)

    def events(self) -> SequenceConsumer[ReturnT]:
        """Start an independent traversal replaying the full history."""
        return SequenceConsumer(self._completion, self._consumers, self._history.snapshot())

    def __aiter__(self) -> SequenceConsumer[ReturnT]:
        return self.events()
