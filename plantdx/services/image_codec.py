"""
Data-URI image decoding and size validation.
"""
import base64
import binascii
import re

from plantdx.api.schemas import DecodedImage
from plantdx.core.errors import ImageTooLargeError, InvalidImageError

DATA_URI_RE = re.compile(r"^data:image/(jpeg|jpg|png|webp);base64,(.+)$")

NO_IMAGE_MESSAGE = "No image provided. Please provide an image of the plant for diagnosis."
INVALID_FORMAT_MESSAGE = "Invalid image format. Please provide a JPEG, PNG, or WebP image."


def estimate_size_bytes(payload: str) -> float:
    # base64 encodes 3 bytes in 4 characters
    return len(payload) * 3 / 4


def decode_image(image, max_image_mb: float = 5) -> DecodedImage:
    """
    Parse a data URI into a DecodedImage.

    Raises:
        InvalidImageError: empty input, unsupported subtype, or broken base64
        ImageTooLargeError: estimated size above max_image_mb
    """
    if not image:
        raise InvalidImageError(NO_IMAGE_MESSAGE)
    if not isinstance(image, str):
        raise InvalidImageError(INVALID_FORMAT_MESSAGE)

    match = DATA_URI_RE.fullmatch(image)
    if not match:
        raise InvalidImageError(INVALID_FORMAT_MESSAGE)

    subtype, payload = match.groups()
    size_bytes = estimate_size_bytes(payload)
    size_mb = size_bytes / (1024 * 1024)
    if size_mb > max_image_mb:
        raise ImageTooLargeError(
            f"Image is too large ({size_mb:.1f}MB). "
            f"Please provide an image smaller than {max_image_mb:g}MB."
        )

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidImageError(INVALID_FORMAT_MESSAGE)

    mime_type = "image/jpeg" if subtype == "jpg" else f"image/{subtype}"
    return DecodedImage(mime_type=mime_type, data=data, size_bytes=int(size_bytes))
