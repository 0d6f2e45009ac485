"""Shared utilities for service layer."""
import io

import qrcode
from qrcode.image.svg import SvgImage


def generate_qr_code(data: str) -> io.BytesIO:
    """Generate an SVG QR code as a BytesIO object.

    Args:
        data: The data to encode in the QR code

    Returns:
        io.BytesIO: A BytesIO object containing the QR code image in SVG format
    """
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(image_factory=SvgImage)
    buffer = io.BytesIO()
    img.save(buffer)
    buffer.seek(0)
    return buffer
