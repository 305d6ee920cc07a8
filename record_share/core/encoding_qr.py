import io
import os
import uuid
from dataclasses import dataclass, field
from typing import Iterator, List, Sequence, Tuple

import segno
from PIL import Image

from .segmenting import Segment

QR_ERROR_LEVEL = 'M'
DEFAULT_SCALE = 6
DEFAULT_BORDER = 2


def make_qr(text: str) -> segno.QRCode:
    return segno.make(text, error=QR_ERROR_LEVEL, encoding='utf-8', micro=False, boost_error=False)


@dataclass
class QRGenerationResult:
    payload: str
    qr: segno.QRCode
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_image(self, scale: int = DEFAULT_SCALE, border: int = DEFAULT_BORDER) -> Image.Image:
        buff = io.BytesIO()
        self.qr.save(buff, kind='png', scale=scale, border=border)
        buff.seek(0)
        img = Image.open(buff)
        img.load()
        return img.convert('RGB')


def render(text: str) -> QRGenerationResult:
    return QRGenerationResult(payload=text, qr=make_qr(text))


def segments_to_qr_frames(segments: Sequence[Segment]) -> Iterator[Tuple[int, QRGenerationResult]]:
    """Yield (index, rendered QR) for each segment, in sequence order."""
    for seg in sorted(segments, key=lambda s: s.index):
        yield seg.index, render(seg.wire)


def save_qr_frames(segments: Sequence[Segment], out_dir: str, scale: int = DEFAULT_SCALE,
                   border: int = DEFAULT_BORDER) -> List[str]:
    os.makedirs(out_dir, exist_ok=True)
    written = []
    for idx, result in segments_to_qr_frames(segments):
        fname = os.path.join(out_dir, f"segment_{idx:03d}_of_{len(segments):03d}.png")
        result.qr.save(fname, scale=scale, border=border)
        written.append(fname)
    return written
