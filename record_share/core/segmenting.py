import logging
import re
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)

HEADER_PREFIX = "DJMW"
HEADER_SEPARATOR = "|"
DEFAULT_MAX_LENGTH = 700  # characters per QR code
MINIMUM_BODY_LENGTH = 80
CHUNK_SIZE_STEP = 20
MAX_SEGMENT_TOTAL = 9999  # longest sequence a receiver will collect

_NUMBER = re.compile(r'[+-]?[0-9]{1,18}')


class PayloadTooLargeForSegmentSizeError(ValueError):
    """No chunk size at or above the body floor fits within max_length."""

    def __init__(self, payload_length: int, max_length: int):
        super().__init__(
            f"Payload of {payload_length} characters cannot be split into segments "
            f"of at most {max_length} characters"
        )
        self.payload_length = payload_length
        self.max_length = max_length


@dataclass(frozen=True)
class Segment:
    index: int
    total: int
    body: str

    @property
    def wire(self) -> str:
        """Text to render as one QR code."""
        return format_segment(self.index, self.total, self.body)


def format_segment(index: int, total: int, body: str) -> str:
    sep = HEADER_SEPARATOR
    return f"{HEADER_PREFIX}{sep}{index}{sep}{total}{sep}{body}"


def is_segment(raw: str) -> bool:
    return parse_segment(raw) is not None


def parse_segment(raw: str) -> Optional[Segment]:
    """Parse a wire string. Returns None if it does not carry a segment header.

    Only the first three separators are significant; the body is kept verbatim.
    Index and total are not range-checked here.
    """
    if not raw.startswith(HEADER_PREFIX + HEADER_SEPARATOR):
        return None
    parts = raw.split(HEADER_SEPARATOR, 3)
    if len(parts) != 4:
        return None
    _prefix, index, total, body = parts
    if not _NUMBER.fullmatch(index) or not _NUMBER.fullmatch(total):
        return None
    return Segment(index=int(index), total=int(total), body=body)


def estimated_header_length(total: int) -> int:
    """Header size when both index and total are written with as many digits as total."""
    digits = len(str(total))
    return len(HEADER_PREFIX) + len(HEADER_SEPARATOR) * 3 + digits * 2


def segments(payload: str, max_length: int = DEFAULT_MAX_LENGTH, allow_truncation: bool = False) -> List[Segment]:
    """Split payload into segments whose wire form is at most max_length characters.

    Raises PayloadTooLargeForSegmentSizeError when no chunk size at or above
    MINIMUM_BODY_LENGTH fits, or when the split would need more than
    MAX_SEGMENT_TOTAL segments. With allow_truncation the old behaviour is kept
    instead: a single segment carrying only the head of the payload.
    """
    body_length = max(1, max_length - estimated_header_length(1))
    if len(payload) <= body_length:
        return [Segment(1, 1, payload)]

    estimated_total = len(payload) // MINIMUM_BODY_LENGTH + 1
    chunk_size = max(MINIMUM_BODY_LENGTH, max_length - estimated_header_length(estimated_total))

    while chunk_size >= MINIMUM_BODY_LENGTH:
        parts = _chunk(payload, chunk_size)
        total = len(parts)
        if total > MAX_SEGMENT_TOTAL:
            # smaller chunks only make the sequence longer
            break
        generated = [Segment(i, total, part) for i, part in enumerate(parts, start=1)]
        if all(len(seg.wire) <= max_length for seg in generated):
            logger.debug("Split %d characters into %d segments of %d", len(payload), total, chunk_size)
            return generated
        chunk_size -= CHUNK_SIZE_STEP

    if not allow_truncation:
        raise PayloadTooLargeForSegmentSizeError(len(payload), max_length)

    keep = max(0, max_length - estimated_header_length(1))
    logger.warning(
        "No segment size fits max_length=%d; truncating payload from %d to %d characters",
        max_length, len(payload), keep,
    )
    return [Segment(1, 1, payload[:keep])]


def _chunk(payload: str, chunk_size: int) -> List[str]:
    return [payload[i: i + chunk_size] for i in range(0, len(payload), chunk_size)]
