import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from . import codec
from .accumulator import Complete, Invalid, Outcome, SegmentAccumulator, SinglePayload
from .segmenting import DEFAULT_MAX_LENGTH, Segment, segments

logger = logging.getLogger(__name__)


@dataclass
class ShareBundle:
    """Everything the sending screen needs to present one record."""
    encoded_payload: str
    segments: List[Segment]
    pretty_json: str

    @property
    def wire_strings(self) -> List[str]:
        return [seg.wire for seg in self.segments]


def make_pretty_json(encoded_payload: str) -> str:
    value = codec.decode_value(encoded_payload)
    return json.dumps(value, indent=2, ensure_ascii=False)


def prepare_share(value: Any, max_length: int = DEFAULT_MAX_LENGTH, allow_truncation: bool = False) -> ShareBundle:
    encoded = codec.encode(value)
    parts = segments(encoded, max_length, allow_truncation=allow_truncation)
    logger.info("Prepared %d character payload as %d segment(s)", len(encoded), len(parts))
    return ShareBundle(encoded_payload=encoded, segments=parts, pretty_json=make_pretty_json(encoded))


@dataclass(frozen=True)
class ReceiveResult:
    outcome: Outcome
    value: Optional[Any] = None

    @property
    def done(self) -> bool:
        return isinstance(self.outcome, (Complete, SinglePayload))


class ReceiveSession:
    """Feeds scanned strings through the accumulator and decodes finished payloads.

    A payload that reassembles but fails to decode is reported as Invalid.
    """

    def __init__(self):
        self.accumulator = SegmentAccumulator()

    def reset(self):
        self.accumulator.reset()

    def feed(self, text: str) -> ReceiveResult:
        outcome = self.accumulator.ingest(text)
        if isinstance(outcome, (Complete, SinglePayload)):
            try:
                value = codec.decode_value(outcome.payload)
            except codec.PayloadError as e:
                logger.info("Scanned payload could not be decoded: %s", e)
                self.accumulator.reset()
                return ReceiveResult(Invalid(e.message))
            return ReceiveResult(outcome, value)
        return ReceiveResult(outcome)
