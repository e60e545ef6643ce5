"""Local Sequencer — in-process ordering service for development and tests.

Invariants:
    - Markers are strictly increasing across all topics: "<seconds>.<nanoseconds>"
      (consensus-timestamp shape), derived from the wall clock but bumped by 1ns
      whenever the clock has not advanced
    - Every accepted record is kept, in order, under its topic
    - A missing topic is replaced by the record's "type" field
"""

import logging
import time
from collections import defaultdict

from eduair.core.domain_types import SequenceMarker

logger = logging.getLogger(__name__)


class LocalSequencer:

    def __init__(self):
        self._last_ns = 0
        self.messages: dict[str, list[tuple[SequenceMarker, dict]]] = defaultdict(list)

    def _next_ns(self) -> int:
        self._last_ns = max(time.time_ns(), self._last_ns + 1)
        return self._last_ns

    async def publish(self, topic_id: str | None, record: dict) -> SequenceMarker:
        topic = topic_id or str(record.get("type", "default"))
        ns = self._next_ns()
        marker = SequenceMarker(f"{ns // 1_000_000_000}.{ns % 1_000_000_000:09d}")
        self.messages[topic].append((marker, dict(record)))
        logger.debug(
            "Record sequenced locally",
            extra={"topic_id": topic, "sequence_marker": marker},
        )
        return marker

    async def aclose(self) -> None:
        return None
