"""
Event record helpers.

An event record is a plain tuple: ``(name,)`` when the event carries no
payload, ``(name, payload)`` otherwise. Payload shapes per event name are a
static contract (e.g. a ``TypedDict``) and are not checked at runtime.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Union

EventName = str
EventRecord = Union[tuple[EventName], tuple[EventName, Any]]
EventReceiver = Callable[..., Union[Awaitable[None], None]]


class _NoPayload:
    """Marker for an omitted payload; ``None`` is a valid payload."""

    _instance: _NoPayload | None = None

    def __new__(cls) -> _NoPayload:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_PAYLOAD"


NO_PAYLOAD: Any = _NoPayload()


def make_event(name: EventName, payload: Any = NO_PAYLOAD) -> EventRecord:
    if payload is NO_PAYLOAD:
        return (name,)
    return (name, payload)


def event_name(record: EventRecord) -> EventName:
    return record[0]


def has_payload(record: EventRecord) -> bool:
    return len(record) > 1
