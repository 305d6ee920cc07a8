"""Tests for QR rendering (segno) and scanning (pyzbar)."""
from __future__ import annotations

import os

import pytest
from PIL import Image

from record_share.core.encoding_qr import (
    QR_ERROR_LEVEL,
    make_qr,
    render,
    save_qr_frames,
    segments_to_qr_frames,
)
from record_share.core.segmenting import segments


class TestRendering:
    def test_error_level_m(self) -> None:
        qr = make_qr("DJMW|1|1|hello")
        assert qr.error == QR_ERROR_LEVEL
        assert not qr.is_micro

    def test_full_size_segment_fits(self) -> None:
        wire = segments("x" * 5000, 700)[0].wire
        assert len(wire) <= 700
        assert make_qr(wire).version is not None

    def test_to_image(self) -> None:
        img = render("DJMW|1|1|hello").to_image(scale=4, border=2)
        assert isinstance(img, Image.Image)
        assert img.mode == "RGB"
        assert img.width == img.height
        assert img.width % 4 == 0

    def test_results_have_distinct_ids(self) -> None:
        assert render("a").id != render("a").id

    def test_frames_follow_index_order(self) -> None:
        parts = segments("y" * 1000, 150)
        frames = list(segments_to_qr_frames(list(reversed(parts))))
        assert [idx for idx, _ in frames] == list(range(1, len(parts) + 1))
        assert [r.payload for _, r in frames] == [seg.wire for seg in parts]

    def test_save_qr_frames(self, tmp_path) -> None:
        parts = segments("z" * 1000, 300)
        written = save_qr_frames(parts, str(tmp_path / "qr"), scale=2)
        assert len(written) == len(parts)
        assert os.path.basename(written[0]) == f"segment_001_of_{len(parts):03d}.png"
        assert all(os.path.isfile(p) for p in written)


class TestScanning:
    def test_rendered_segment_scans_back(self) -> None:
        pytest.importorskip("cv2")
        pytest.importorskip("pyzbar.pyzbar")
        from record_share.core.decoding_qr import scan_image

        wire = segments('{"resourceType":"Patient","name":"Jones"}' * 20, 300)[1].wire
        img = render(wire).to_image(scale=6)
        assert scan_image(img) == [wire]

    def test_camera_frame(self) -> None:
        pytest.importorskip("cv2")
        pytest.importorskip("pyzbar.pyzbar")
        import numpy as np
        from record_share.core.decoding_qr import scan_frame

        img = render("DJMW|1|2|abc").to_image(scale=6)
        frame_bgr = np.array(img)[:, :, ::-1].copy()
        assert scan_frame(frame_bgr) == ["DJMW|1|2|abc"]

    def test_blank_image(self) -> None:
        pytest.importorskip("cv2")
        pytest.importorskip("pyzbar.pyzbar")
        from record_share.core.decoding_qr import scan_image

        assert scan_image(Image.new("RGB", (200, 200), (255, 255, 255))) == []
