"""QR code encoder producing PNG data URLs."""

import base64
import io
from dataclasses import dataclass

import qrcode
from qrcode.exceptions import DataOverflowError
from qrcode.image.pil import PilImage

from core.exceptions import QrEncodingError

_ERROR_CORRECTION = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}


@dataclass(frozen=True)
class QrOptions:
    """Rendering options for a QR image."""

    error_correction: str = "M"
    size: int = 400
    margin: int = 2
    dark_color: str = "#000000"
    light_color: str = "#FFFFFF"


class QrCodeEncoder:
    """Encodes text (a URL) as a PNG QR code."""

    def __init__(self, options: QrOptions | None = None) -> None:
        self._options = options or QrOptions()

    def encode(self, text: str, options: QrOptions | None = None) -> bytes:
        """
        Render ``text`` as PNG bytes.

        Raises:
            QrEncodingError: If the text cannot be encoded or rendered
        """
        opts = options or self._options
        if not text:
            raise QrEncodingError("nothing to encode")

        try:
            qr = qrcode.QRCode(
                error_correction=_ERROR_CORRECTION[opts.error_correction.upper()],
                box_size=1,
                border=opts.margin,
            )
            qr.add_data(text)
            qr.make(fit=True)

            # Scale modules so the whole image is close to the requested size
            modules = qr.modules_count + 2 * opts.margin
            qr.box_size = max(1, opts.size // modules)

            img: PilImage = qr.make_image(
                image_factory=PilImage,
                fill_color=opts.dark_color,
                back_color=opts.light_color,
            )
            buffer = io.BytesIO()
            img.save(buffer, format="PNG")
        except (KeyError, ValueError, OSError, DataOverflowError) as e:
            raise QrEncodingError(str(e)) from e

        return buffer.getvalue()

    def encode_data_url(self, text: str, options: QrOptions | None = None) -> str:
        """Render ``text`` and wrap the PNG in a ``data:`` URL."""
        png = self.encode(text, options)
        return f"data:image/png;base64,{base64.b64encode(png).decode('ascii')}"
