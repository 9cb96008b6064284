"""
Promiventerator - a future that emits events and replays them to async iterators.

One object combines:
1. A single-resolution future (``await pv``)
2. A multicast event emitter (``on`` / ``once`` / ``off`` / ``emit``)
3. A replayable event sequence (``async for event in pv``)

Usage:
    promiventerator init    # Write a sample promiventerator.yml
    promiventerator demo    # Run the progress/complete walkthrough
"""

__version__ = "0.1.0"

from .consumers import ConsumerBusy, IterationResult, SequenceConsumer
from .core import Promiventerator
from .dispatcher import PendingDispatch
from .events import NO_PAYLOAD, EventRecord
from .future import CompletionFuture, FutureNotSettled, FutureState

__all__ = [
    "CompletionFuture",
    "ConsumerBusy",
    "EventRecord",
    "FutureNotSettled",
    "FutureState",
    "IterationResult",
    "NO_PAYLOAD",
    "PendingDispatch",
    "Promiventerator",
    "SequenceConsumer",
]
