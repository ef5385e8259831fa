import io

import qrcode
from qrcode.constants import ERROR_CORRECT_H


def qr_png(data, box_size=8, border=4):
    """Render ``data`` as a PNG QR code and return the bytes."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_H,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color='black', back_color='white')
    buf = io.BytesIO()
    img.save(buf)
    return buf.getvalue()
