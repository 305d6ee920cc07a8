"""End-to-end tests for record_share.core.sharing."""
from __future__ import annotations

import json
import random

from record_share.core.accumulator import Complete, Invalid, Progress, SinglePayload
from record_share.core.codec import COMPRESSION_PREFIX, InvalidBase64Error, SerializationError
from record_share.core.segmenting import format_segment
from record_share.core.sharing import ReceiveSession, make_pretty_json, prepare_share


def _observation_bundle(n: int) -> dict:
    return {
        "resourceType": "Bundle",
        "type": "collection",
        "entry": [
            {
                "resource": {
                    "resourceType": "Observation",
                    "id": f"obs-{i}",
                    "status": "final",
                    "code": {"coding": [{"system": "http://snomed.info/sct", "code": "364075005", "display": "Heart rate"}]},
                    "valueQuantity": {"value": 60 + i % 40, "unit": "beats/min"},
                }
            }
            for i in range(n)
        ],
    }


class TestPrepareShare:
    def test_small_record_single_segment(self) -> None:
        record = {"resourceType": "Patient", "id": "p1"}
        bundle = prepare_share(record)
        assert bundle.encoded_payload == '{"resourceType":"Patient","id":"p1"}'
        assert len(bundle.segments) == 1
        assert bundle.wire_strings == ["DJMW|1|1|" + bundle.encoded_payload]

    def test_large_record_compressed_and_split(self) -> None:
        bundle = prepare_share(_observation_bundle(150), max_length=200)
        assert bundle.encoded_payload.startswith(COMPRESSION_PREFIX)
        assert len(bundle.segments) > 1
        assert all(len(w) <= 200 for w in bundle.wire_strings)

    def test_pretty_json(self) -> None:
        record = {"b": [1, 2], "a": "x/y"}
        bundle = prepare_share(record)
        assert bundle.pretty_json == json.dumps(record, indent=2)
        assert make_pretty_json(bundle.encoded_payload) == bundle.pretty_json


class TestReceiveSession:
    def test_shuffled_round_trip(self) -> None:
        record = _observation_bundle(150)
        wires = prepare_share(record, max_length=180).wire_strings
        rng = random.Random(3)
        rng.shuffle(wires)
        # A repeated scan in the middle must not matter
        wires.insert(2, wires[0])

        session = ReceiveSession()
        results = [session.feed(w) for w in wires]
        assert not any(r.done for r in results[:-1])
        assert isinstance(results[-1].outcome, Complete)
        assert results[-1].value == record

    def test_incompressible_record(self) -> None:
        rng = random.Random(5)
        record = {"note": "".join(rng.choice("abcdefghijklmnopqrstuvwxyz ") for _ in range(4000))}
        wires = prepare_share(record, max_length=300).wire_strings
        session = ReceiveSession()
        for w in reversed(wires):
            result = session.feed(w)
        assert result.done
        assert result.value == record

    def test_unsegmented_record(self) -> None:
        result = ReceiveSession().feed('{"id":"p1"}')
        assert isinstance(result.outcome, SinglePayload)
        assert result.done
        assert result.value == {"id": "p1"}

    def test_progress_not_done(self) -> None:
        result = ReceiveSession().feed(format_segment(1, 2, '{"a"'))
        assert isinstance(result.outcome, Progress)
        assert not result.done
        assert result.value is None

    def test_unreadable_single_payload(self) -> None:
        result = ReceiveSession().feed("just some words")
        assert result.outcome == Invalid(SerializationError.message)
        assert not result.done

    def test_corrupt_reassembled_payload(self) -> None:
        session = ReceiveSession()
        session.feed(format_segment(1, 2, "compressed:@@"))
        result = session.feed(format_segment(2, 2, "@@"))
        assert result.outcome == Invalid(InvalidBase64Error.message)
        assert not session.accumulator.is_collecting

    def test_reset(self) -> None:
        session = ReceiveSession()
        session.feed(format_segment(1, 2, "x"))
        session.reset()
        assert not session.accumulator.is_collecting
