"""Render QR payloads as SVG for label printing."""

from __future__ import annotations

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from qrcode.image.svg import SvgPathImage

DEFAULT_BOX_SIZE = 10
DEFAULT_BORDER = 2


def render_qr_svg(data: str, box_size: int = DEFAULT_BOX_SIZE, border: int = DEFAULT_BORDER) -> str:
    """Return an SVG document encoding ``data`` with medium error correction."""

    if not data:
        raise ValueError("QR payload must not be empty")
    qr = qrcode.QRCode(
        error_correction=ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
        image_factory=SvgPathImage,
    )
    qr.add_data(data)
    qr.make(fit=True)
    image = qr.make_image()
    return image.to_string(encoding="unicode")
