import logging
from typing import List, Union

import cv2
import numpy as np
from PIL import Image
from pyzbar.pyzbar import ZBarSymbol
from pyzbar.pyzbar import decode as decode_qr

logger = logging.getLogger(__name__)


def scan_image(img: Union[Image.Image, np.ndarray]) -> List[str]:
    """Return the text of every QR code found in img, in scan order."""
    if isinstance(img, np.ndarray):
        img = Image.fromarray(img)
    img = img.convert('RGB')
    texts = []
    for qr in decode_qr(img, symbols=[ZBarSymbol.QRCODE]):
        try:
            texts.append(qr.data.decode('utf-8'))
        except UnicodeDecodeError as e:
            logger.warning("Skipping QR code with non UTF-8 content: %s", e)
    return texts


def scan_frame(frame_bgr: np.ndarray) -> List[str]:
    """Scan an OpenCV (BGR) camera frame."""
    rgb_frame = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
    return scan_image(Image.fromarray(rgb_frame))


def scan_file(path: str) -> List[str]:
    with Image.open(path) as img:
        return scan_image(img)
