"""
Image payload helpers

Browsers send frames as base64 data URLs ("data:image/jpeg;base64,...").
The pipeline only ever carries the decoded bytes.
"""

import base64
import binascii

from livedetect.errors import FrameDecodeError


def decode_image_data(image_data: str) -> bytes:
    """
    Decode a base64 data URL (or bare base64 string) into image bytes.

    Raises:
        FrameDecodeError: If the string is empty or not valid base64
    """
    if not image_data:
        raise FrameDecodeError("imageData is empty")

    _, sep, encoded = image_data.partition(",")
    if not sep:
        encoded = image_data

    try:
        payload = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FrameDecodeError(f"imageData is not valid base64: {e}") from e

    if not payload:
        raise FrameDecodeError("imageData decoded to zero bytes")
    return payload


def encode_image_data(image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"
