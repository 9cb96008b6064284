"""
Pull-based event sequence consumers.

Each consumer replays the history snapshot it was created with, then receives
live events until the completion future settles. A consumer is always in
exactly one state:

- ``_Backlog``: records queued while nobody was waiting (possibly empty)
- ``_Awaiting``: an ``advance()`` call is suspended on a slot
- ``_Closed``: no further events are delivered

Closing a consumer with a value settles the shared future when it is still
pending. Closing one traversal early can therefore decide the outcome seen by
every awaiter of the object.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

from .events import NO_PAYLOAD, EventRecord
from .future import CompletionFuture, FutureState

logger = logging.getLogger(__name__)

ReturnT = TypeVar("ReturnT")


class ConsumerBusy(RuntimeError):
    """Raised when advance() is called while another advance() is pending."""


@dataclass(frozen=True)
class IterationResult:
    """Either the next event record (``done=False``) or the terminal signal."""

    value: Any
    done: bool = False


@dataclass
class _Backlog:
    queue: deque[EventRecord] = field(default_factory=deque)


@dataclass
class _Awaiting:
    slot: asyncio.Future[IterationResult]


class _Closed:
    pass


_ConsumerState = Union[_Backlog, _Awaiting, _Closed]


class ConsumerRegistry:
    """Active consumers in creation order."""

    def __init__(self) -> None:
        self._consumers: dict[SequenceConsumer[Any], None] = {}

    def __len__(self) -> int:
        return len(self._consumers)

    def __contains__(self, consumer: object) -> bool:
        return consumer in self._consumers

    def register(self, consumer: SequenceConsumer[Any]) -> None:
        self._consumers[consumer] = None

    def discard(self, consumer: SequenceConsumer[Any]) -> None:
        self._consumers.pop(consumer, None)

    def broadcast(self, record: EventRecord) -> None:
        for consumer in list(self._consumers):
            consumer.push(record)


class SequenceConsumer(Generic[ReturnT]):
    def __init__(
        self,
        completion: CompletionFuture[ReturnT],
        registry: ConsumerRegistry,
        backlog: list[EventRecord],
    ):
        self._completion = completion
        self._registry = registry
        self._state: _ConsumerState = _Backlog(deque(backlog))
        registry.register(self)
        logger.debug("Consumer started with %d replayed record(s)", len(backlog))

    def __repr__(self) -> str:
        return f"<SequenceConsumer state={self.state}>"

    @property
    def state(self) -> str:
        if isinstance(self._state, _Awaiting):
            return "waiting"
        if isinstance(self._state, _Closed):
            return "closed"
        return "draining"

    @property
    def closed(self) -> bool:
        return isinstance(self._state, _Closed)

    @property
    def backlog_size(self) -> int:
        if isinstance(self._state, _Backlog):
            return len(self._state.queue)
        return 0

    def push(self, record: EventRecord) -> None:
        """Deliver a record: complete the pending slot, or queue it."""
        state = self._state
        if isinstance(state, _Closed):
            return
        if isinstance(state, _Awaiting):
            self._state = _Backlog()
            if not state.slot.done():
                state.slot.set_result(IterationResult(record))
                return
            # Slot was cancelled under us; keep the record for the next advance().
            self._state.queue.append(record)
            return
        state.queue.append(record)

    def _finish(self) -> None:
        self._state = _Closed()
        self._registry.discard(self)
        logger.debug("Consumer finished")

    def _terminal(self) -> IterationResult:
        return IterationResult(self._completion.result(), done=True)

    def _on_settled(self, completion: CompletionFuture[ReturnT]) -> None:
        state = self._state
        if not isinstance(state, _Awaiting) or state.slot.done():
            return
        self._finish()
        if completion.state is FutureState.REJECTED and completion.error is not None:
            state.slot.set_exception(completion.error)
        else:
            state.slot.set_result(IterationResult(completion.value, done=True))

    async def advance(self) -> IterationResult:
        """
        Return the next record, or the terminal signal once the future settled.

        Raises the future's error when it was rejected and the backlog is drained.
        """
        state = self._state
        if isinstance(state, _Closed):
            return IterationResult(await self._completion, done=True)
        if isinstance(state, _Awaiting):
            raise ConsumerBusy("advance() is already pending on this consumer")
        if state.queue:
            return IterationResult(state.queue.popleft())
        if self._completion.done():
            self._finish()
            return self._terminal()

        slot: asyncio.Future[IterationResult] = asyncio.get_running_loop().create_future()
        awaiting = _Awaiting(slot)
        self._state = awaiting
        self._completion.add_done_callback(self._on_settled)
        try:
            return await slot
        except asyncio.CancelledError:
            self._requeue(slot)
            raise
        finally:
            self._completion.remove_done_callback(self._on_settled)
            if self._state is awaiting:
                # Cancelled while waiting.
                self._state = _Backlog()

    def _requeue(self, slot: asyncio.Future[IterationResult]) -> None:
        if not slot.done() or slot.cancelled() or slot.exception() is not None:
            return
        result = slot.result()
        if result.done or not isinstance(self._state, _Backlog):
            return
        # Delivered in the same turn the waiter was cancelled.
        self._state.queue.appendleft(result.value)

    def _detach(self, value: Any) -> None:
        state = self._state
        self._state = _Closed()
        self._registry.discard(self)
        if isinstance(state, _Awaiting) and not state.slot.done():
            state.slot.set_result(IterationResult(None if value is NO_PAYLOAD else value, done=True))
        if value is not NO_PAYLOAD and not self._completion.done():
            logger.debug("Consumer close settles the future with %r", value)
            self._completion.settle(value)

    async def close(self, value: Any = NO_PAYLOAD) -> IterationResult:
        """
        Stop this traversal and wait for the future's outcome.

        When ``value`` is given and the future is still pending, the future is
        settled with ``value`` for every observer, not just this consumer.
        """
        self._detach(value)
        return IterationResult(await self._completion, done=True)

    async def aclose(self) -> None:
        """
        Stop this traversal without waiting for the future.

        Lets ``contextlib.aclosing`` release a consumer left early::

            async with aclosing(pv.events()) as events:
                async for record in events:
                    if record[0] == "complete":
                        break
        """
        self._detach(NO_PAYLOAD)

    def __aiter__(self) -> SequenceConsumer[ReturnT]:
        return self

    async def __anext__(self) -> EventRecord:
        result = await self.advance()
        if result.done:
            raise StopAsyncIteration(result.value)
        return result.value
