"""QR code rendering for ticket tokens."""

from io import BytesIO

import qrcode

from utils.logging_config import get_logger

logger = get_logger(__name__)


class QrCodeRenderer:
    """Render a secure token to a PNG QR code."""

    def __init__(self, box_size: int = 10, border: int = 4):
        self.box_size = box_size
        self.border = border

    def render(self, token: str) -> bytes:
        """Return PNG bytes encoding ``token``."""
        if not token:
            raise ValueError("token is required to render a QR code")

        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=self.box_size,
            border=self.border,
        )
        qr.add_data(token)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        buffer = BytesIO()
        img.save(buffer, "PNG")
        return buffer.getvalue()
