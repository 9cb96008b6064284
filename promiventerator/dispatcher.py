"""
Ordered multicast dispatch of named events to registered callbacks.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Generator

from .events import EventName, EventReceiver, EventRecord, event_name

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ListenerRecord:
    """A registered callback; identity, not callback equality, makes it unique."""

    callback: EventReceiver
    once: bool = False
    fired: bool = False


class PendingDispatch:
    """
    Awaitable barrier over the work issued by one dispatch.

    Awaiting it waits for every asynchronous listener to finish and yields
    whether any listener was invoked. The first listener failure propagates;
    the remaining tasks keep running.
    """

    def __init__(self, had_listeners: bool, issued: list[asyncio.Future[Any]] | None = None):
        self.had_listeners = had_listeners
        self._issued = issued or []

    def __repr__(self) -> str:
        return f"<PendingDispatch had_listeners={self.had_listeners} pending={len(self._issued)}>"

    def done(self) -> bool:
        return all(task.done() for task in self._issued)

    def __await__(self) -> Generator[Any, None, bool]:
        if self._issued:
            yield from asyncio.gather(*self._issued).__await__()
        return self.had_listeners


class EventDispatcher:
    def __init__(self) -> None:
        self._listeners: dict[EventName, list[ListenerRecord]] = {}

    def add(self, name: EventName, callback: EventReceiver, once: bool = False) -> ListenerRecord:
        record = ListenerRecord(callback=callback, once=once)
        self._listeners.setdefault(name, []).append(record)
        return record

    def remove(self, name: EventName, callback: EventReceiver) -> int:
        """Remove every record for ``name`` whose callback matches; return the count."""
        records = self._listeners.get(name)
        if not records:
            self._listeners.pop(name, None)
            return 0
        kept = [record for record in records if record.callback != callback]
        removed = len(records) - len(kept)
        self._store(name, kept)
        return removed

    def listener_count(self, name: EventName) -> int:
        return len(self._listeners.get(name, ()))

    def event_names(self) -> list[EventName]:
        return list(self._listeners)

    def _store(self, name: EventName, records: list[ListenerRecord]) -> None:
        if records:
            self._listeners[name] = records
        else:
            self._listeners.pop(name, None)

    def _discard(self, name: EventName, record: ListenerRecord) -> None:
        records = self._listeners.get(name)
        if records is None:
            return
        self._store(name, [r for r in records if r is not record])

    def dispatch(self, record: EventRecord) -> PendingDispatch:
        name = event_name(record)
        args = record[1:]
        # Snapshot: handlers may add/remove listeners for this name while we iterate.
        snapshot = list(self._listeners.get(name, ()))
        issued: list[asyncio.Future[Any]] = []
        invoked = 0

        for listener in snapshot:
            if listener.once:
                if listener.fired:
                    continue
                listener.fired = True
                self._discard(name, listener)
            invoked += 1
            maybe = listener.callback(*args)
            if inspect.isawaitable(maybe):
                issued.append(asyncio.ensure_future(maybe))

        if invoked:
            logger.debug("Dispatched %r to %d listener(s), %d async", name, invoked, len(issued))
        return PendingDispatch(invoked > 0, issued)
