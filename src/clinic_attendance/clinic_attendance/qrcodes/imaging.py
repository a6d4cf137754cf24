from __future__ import annotations

import io
from typing import BinaryIO, Optional

import qrcode
from PIL import Image, UnidentifiedImageError

from ..core.exceptions import ValidationError


def render_png(data: str, *, box_size: int = 10, border: int = 2) -> io.BytesIO:
    """Render ``data`` as a PNG QR image; returns a rewound buffer."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return buf


def decode_first(stream: BinaryIO) -> Optional[str]:
    """Text of the first QR symbol found in an uploaded image, or None."""
    # zbar is a native library; load it only when an upload is decoded.
    from pyzbar.pyzbar import decode as pyzbar_decode

    try:
        img = Image.open(stream).convert("RGB")
    except (UnidentifiedImageError, OSError):
        raise ValidationError("Uploaded file is not a readable image")

    decoded = pyzbar_decode(img)
    if not decoded:
        return None
    return decoded[0].data.decode("utf-8").strip()
