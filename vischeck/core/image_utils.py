"""Image encoding, decoding, cropping and rotation helpers.

Images are NumPy arrays of shape ``(H, W, 3)`` in BGR colour order with
dtype ``uint8``, the same layout the capture drivers produce and OpenCV
consumes.
"""

from __future__ import annotations

import base64
import binascii
import math

import cv2
import numpy as np
from numpy.typing import NDArray

from vischeck.models.geometry import Region


def encode_as_png(image: NDArray[np.uint8]) -> bytes:
    """Encode an image as PNG bytes.

    Args:
        image: BGR ``uint8`` image.

    Returns:
        PNG-encoded bytes.

    Raises:
        RuntimeError: If OpenCV fails to encode the image.
    """
    success, buffer = cv2.imencode(".png", image)
    if not success:
        raise RuntimeError("cv2.imencode failed to encode image as PNG")
    return bytes(buffer)


def image_from_bytes(data: bytes) -> NDArray[np.uint8]:
    """Decode encoded image bytes (PNG, JPEG, ...) into a BGR image.

    Raises:
        ValueError: If the bytes cannot be decoded.
    """
    raw = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(raw, cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError("Failed to decode image bytes")
    return image


def image_from_base64(image64: str) -> NDArray[np.uint8]:
    """Decode a base64 string of encoded image bytes.

    Raises:
        ValueError: If ``image64`` is empty or not a valid image.
    """
    if not image64:
        raise ValueError("image64 must be a non-empty string")
    try:
        data = base64.b64decode(image64, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 image data: {exc}") from exc
    return image_from_bytes(data)


def base64_from_image(image: NDArray[np.uint8]) -> str:
    """Encode an image as PNG and return it as a base64 string."""
    return base64.b64encode(encode_as_png(image)).decode("ascii")


def image_from_file(path: str) -> NDArray[np.uint8]:
    """Load an image from disk.

    Raises:
        FileNotFoundError: If the file does not exist or cannot be read.
    """
    image = cv2.imread(path, cv2.IMREAD_COLOR)
    if image is None:
        raise FileNotFoundError(f"Failed to load image from {path}")
    return image


def get_image_part(image: NDArray[np.uint8], region: Region) -> NDArray[np.uint8]:
    """Return a copy of the part of ``image`` covered by ``region``.

    ``region`` is in the image's pixel space and must lie inside it.

    Raises:
        ValueError: If ``region`` extends beyond the image.
    """
    height, width = image.shape[:2]
    if region.left < 0 or region.top < 0 or region.right > width or region.bottom > height:
        raise ValueError(f"Region {region} is outside image of size {width}x{height}")
    return image[region.top : region.bottom, region.left : region.right].copy()


def rotate_image(image: NDArray[np.uint8], degrees: float) -> NDArray[np.uint8]:
    """Rotate an image clockwise, growing the canvas to fit the result.

    Args:
        image: BGR ``uint8`` image.
        degrees: Clockwise rotation angle.

    Returns:
        The rotated image.  Uncovered corners are black.
    """
    height, width = image.shape[:2]
    radians = math.radians(degrees)
    sin = abs(math.sin(radians))
    cos = abs(math.cos(radians))
    rotated_width = int(math.floor(width * cos + height * sin))
    rotated_height = int(math.floor(height * cos + width * sin))

    # OpenCV treats positive angles as counter-clockwise.
    matrix = cv2.getRotationMatrix2D((width / 2, height / 2), -degrees, 1.0)
    matrix[0, 2] += (rotated_width - width) / 2
    matrix[1, 2] += (rotated_height - height) / 2
    return cv2.warpAffine(image, matrix, (rotated_width, rotated_height))
