"""
Append-only event history.

The log is never pruned: late consumers replay everything ever emitted, so
memory grows with emission count. A one-time warning is logged when the log
reaches ``warn_threshold`` records (0 disables the warning).
"""

from __future__ import annotations

import logging

from .events import EventRecord

logger = logging.getLogger(__name__)


class EventHistory:
    def __init__(self, warn_threshold: int = 0):
        self.warn_threshold = warn_threshold
        self._records: list[EventRecord] = []
        self._warned = False

    def __len__(self) -> int:
        return len(self._records)

    def append(self, record: EventRecord) -> None:
        self._records.append(record)
        if self.warn_threshold > 0 and not self._warned and len(self._records) >= self.warn_threshold:
            self._warned = True
            logger.warning(
                "Event history reached %d records; history is retained for replay and is never pruned.",
                len(self._records),
            )

    def snapshot(self) -> list[EventRecord]:
        return list(self._records)
