"""Receiving side of the segment protocol.

A SegmentAccumulator collects segments scanned one at a time, in any order,
and reports what each scan did. Protocol violations come back as Invalid
outcomes rather than exceptions, and always clear the collected state so the
next scan starts a fresh sequence.

The accumulator belongs to a single scanning session and is not thread-safe;
callers with several scan sources must serialize calls to ingest().
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from .segmenting import MAX_SEGMENT_TOTAL, parse_segment

logger = logging.getLogger(__name__)

FOREIGN_CODE_MESSAGE = "Scanned code doesn't belong to this presentation. Start over from the first segment."
TOTAL_MISMATCH_MESSAGE = "Segments disagreed on how many parts to expect. Ask the sharer to restart the QR sequence."
OUT_OF_RANGE_MESSAGE = "Segment number {index} is outside the expected range. Begin the scan again."
CONFLICT_MESSAGE = "Segment {index} doesn't match the previous scan. Restart the scanning sequence."
MISSING_MESSAGE = "One or more segments are missing. Restart the scanning sequence."
TOO_MANY_SEGMENTS_MESSAGE = "This QR sequence claims {total} parts, more than can be scanned. Ask the sharer to restart the QR sequence."


@dataclass(frozen=True)
class SinglePayload:
    """An unsegmented code scanned while no sequence was in progress."""
    payload: str


@dataclass(frozen=True)
class Progress:
    collected_count: int
    total_count: int
    latest_index: int
    next_expected_index: Optional[int]
    is_duplicate: bool


@dataclass(frozen=True)
class Complete:
    payload: str


@dataclass(frozen=True)
class Invalid:
    message: str


Outcome = Union[SinglePayload, Progress, Complete, Invalid]


@dataclass
class AccumulatorState:
    expected_total: Optional[int] = None
    collected: Dict[int, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.expected_total is None and not self.collected


class SegmentAccumulator:
    def __init__(self):
        self._state = AccumulatorState()

    @property
    def state(self) -> AccumulatorState:
        return self._state

    @property
    def is_collecting(self) -> bool:
        return not self._state.is_empty

    @property
    def expected_total(self) -> Optional[int]:
        return self._state.expected_total

    @property
    def collected_count(self) -> int:
        return len(self._state.collected)

    @property
    def missing_indices(self) -> List[int]:
        total = self._state.expected_total
        if total is None:
            return []
        return [i for i in range(1, total + 1) if i not in self._state.collected]

    def reset(self):
        self._state = AccumulatorState()

    def ingest(self, raw: str) -> Outcome:
        segment = parse_segment(raw)
        if segment is None:
            if self._state.is_empty:
                return SinglePayload(raw)
            return self._invalid(FOREIGN_CODE_MESSAGE)

        if segment.total > MAX_SEGMENT_TOTAL:
            return self._invalid(TOO_MANY_SEGMENTS_MESSAGE.format(total=segment.total))

        state = self._state
        if state.expected_total is not None and state.expected_total != segment.total:
            return self._invalid(TOTAL_MISMATCH_MESSAGE)
        state.expected_total = segment.total

        if segment.index < 1 or segment.index > segment.total:
            return self._invalid(OUT_OF_RANGE_MESSAGE.format(index=segment.index))

        existing = state.collected.get(segment.index)
        if existing is not None:
            if existing != segment.body:
                return self._invalid(CONFLICT_MESSAGE.format(index=segment.index))
            return Progress(
                collected_count=len(state.collected),
                total_count=segment.total,
                latest_index=segment.index,
                next_expected_index=self._next_expected_index(segment.total),
                is_duplicate=True,
            )

        state.collected[segment.index] = segment.body
        collected = len(state.collected)

        if collected == segment.total:
            try:
                ordered = [state.collected[i] for i in range(1, segment.total + 1)]
            except KeyError:
                return self._invalid(MISSING_MESSAGE)
            self.reset()
            logger.info("Reassembled payload from %d segments", segment.total)
            return Complete(''.join(ordered))

        return Progress(
            collected_count=collected,
            total_count=segment.total,
            latest_index=segment.index,
            next_expected_index=self._next_expected_index(segment.total),
            is_duplicate=False,
        )

    def _next_expected_index(self, total: int) -> Optional[int]:
        for index in range(1, total + 1):
            if index not in self._state.collected:
                return index
        return None

    def _invalid(self, message: str) -> Invalid:
        logger.info("Segment rejected, restarting sequence: %s", message)
        self.reset()
        return Invalid(message)
