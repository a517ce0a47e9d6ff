"""JPEG codec adapter: bytes to PIL images and back."""

import io

from PIL import Image, UnidentifiedImageError

from .exceptions import DecodeError, EncodeError

CODEC_FORMAT = "JPEG"
DEFAULT_JPEG_QUALITY = 75


def decode_image(data: bytes) -> Image.Image:
    """
    Decode JPEG bytes into a fully loaded image.

    Only the configured codec is accepted; no format sniffing.

    Raises:
        DecodeError: If the bytes are not a valid JPEG image
    """
    try:
        image = Image.open(io.BytesIO(data), formats=[CODEC_FORMAT])
        image.load()
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as exc:
        raise DecodeError(f"Cannot decode {CODEC_FORMAT} image: {exc}") from exc
    return image


def encode_image(image: Image.Image, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    """
    Encode an image as JPEG at a fixed quality.

    Raises:
        EncodeError: If the encoder fails to write the buffer
    """
    if image.mode not in ("RGB", "L", "CMYK"):
        image = image.convert("RGB")

    output_buffer = io.BytesIO()
    try:
        image.save(output_buffer, format=CODEC_FORMAT, quality=quality)
    except (OSError, ValueError) as exc:
        raise EncodeError(f"Cannot encode {CODEC_FORMAT} image: {exc}") from exc
    return output_buffer.getvalue()
