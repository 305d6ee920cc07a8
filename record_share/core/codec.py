import base64
import binascii
import enum
import json
import logging
import zlib
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

COMPRESSION_PREFIX = "compressed:"
COMPRESSION_THRESHOLD = 2000  # serialized bytes; above this the payload is always compressed

# Second byte of a zlib header for the four standard compression levels
_ZLIB_FLAGS = (0x01, 0x5E, 0x9C, 0xDA)


class PayloadError(Exception):
    """Base class for payload encode/decode failures."""
    message = "The payload could not be read."

    def __init__(self, detail: str = ''):
        super().__init__(detail or self.message)
        self.detail = detail


class InvalidUTF8Error(PayloadError):
    message = "The scanned payload is not valid UTF-8 text."


class InvalidBase64Error(PayloadError):
    message = "The compressed payload is not valid base64."


class CompressionFailedError(PayloadError):
    message = "The payload could not be compressed or decompressed."


class BufferFailureError(PayloadError):
    message = "The payload buffer is empty or unreadable."


class SerializationError(PayloadError):
    message = "The record could not be serialized."


class PayloadFormat(enum.Enum):
    PREFIXED_COMPRESSED = 'prefixed_compressed'
    INFERRED_COMPRESSED = 'inferred_compressed'
    PLAIN_UTF8 = 'plain_utf8'


@dataclass(frozen=True)
class DecodedPayload:
    data: bytes
    format: PayloadFormat


def serialize(value: Any) -> bytes:
    """Canonical compact JSON bytes for value. str/bytes are taken as already serialized."""
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        try:
            return value.encode('utf-8')
        except UnicodeEncodeError as exc:
            raise InvalidUTF8Error(str(exc)) from exc
    try:
        text = json.dumps(value, separators=(',', ':'), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise SerializationError(str(exc)) from exc
    try:
        return text.encode('utf-8')
    except UnicodeEncodeError as exc:
        raise InvalidUTF8Error(str(exc)) from exc


def encode(value: Any) -> str:
    """Serialize value, compressing when the serialized form exceeds the threshold."""
    data = serialize(value)
    if len(data) <= COMPRESSION_THRESHOLD:
        try:
            text = data.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise InvalidUTF8Error(str(exc)) from exc
        if _reads_back_as_text(text):
            return text
        logger.debug("Raw payload would be read as compressed; compressing instead")
    compressed = _compress(data)
    logger.debug("Compressed payload %d -> %d bytes", len(data), len(compressed))
    return COMPRESSION_PREFIX + base64.b64encode(compressed).decode('ascii')


def decode_payload(payload: str) -> bytes:
    """Inverse of encode: returns the serialized bytes."""
    return decode_payload_detailed(payload).data


def decode_payload_detailed(payload: str) -> DecodedPayload:
    if payload.startswith(COMPRESSION_PREFIX):
        remainder = payload[len(COMPRESSION_PREFIX):]
        try:
            compressed = base64.b64decode(remainder, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidBase64Error(str(exc)) from exc
        return DecodedPayload(_decompress(compressed), PayloadFormat.PREFIXED_COMPRESSED)

    # Unprefixed zlib streams come from older senders; a failed guess falls through to plain text
    try:
        candidate = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        candidate = b''
    if looks_like_zlib(candidate):
        try:
            return DecodedPayload(_decompress(candidate), PayloadFormat.INFERRED_COMPRESSED)
        except PayloadError:
            logger.debug("Payload looked like base64 zlib but did not inflate; reading as text")

    try:
        data = payload.encode('utf-8')
    except UnicodeEncodeError as exc:
        raise InvalidUTF8Error(str(exc)) from exc

    if looks_like_zlib(data):
        try:
            return DecodedPayload(_decompress(data), PayloadFormat.INFERRED_COMPRESSED)
        except PayloadError:
            logger.debug("Payload looked like raw zlib but did not inflate; reading as text")
    return DecodedPayload(data, PayloadFormat.PLAIN_UTF8)


def decode_value(payload: str) -> Any:
    """Decode the payload and parse the JSON record it carries."""
    data = decode_payload(payload)
    try:
        return json.loads(data.decode('utf-8'))
    except UnicodeDecodeError as exc:
        raise InvalidUTF8Error(str(exc)) from exc
    except json.JSONDecodeError as exc:
        raise SerializationError(str(exc)) from exc


def looks_like_zlib(data: bytes) -> bool:
    return len(data) >= 2 and data[0] == 0x78 and data[1] in _ZLIB_FLAGS


def _reads_back_as_text(text: str) -> bool:
    """True when decode_payload would return text unchanged as plain UTF-8."""
    if text.startswith(COMPRESSION_PREFIX):
        return False
    try:
        return decode_payload_detailed(text).format is PayloadFormat.PLAIN_UTF8
    except PayloadError:
        return False


def _compress(data: bytes) -> bytes:
    try:
        return zlib.compress(data)
    except zlib.error as exc:
        raise CompressionFailedError(str(exc)) from exc


def _decompress(data: bytes) -> bytes:
    if not data:
        raise BufferFailureError()
    # zlib-wrapped first, then raw deflate as emitted by some mobile encoders
    last_error = None
    for wbits in (zlib.MAX_WBITS, -zlib.MAX_WBITS):
        try:
            return zlib.decompress(data, wbits)
        except zlib.error as exc:
            last_error = exc
    raise CompressionFailedError(str(last_error))
