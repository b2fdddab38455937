"""Unit tests for the OpenCV image helpers."""

from __future__ import annotations

import base64

import numpy as np
import pytest

from vischeck.core.image_utils import (
    base64_from_image,
    encode_as_png,
    get_image_part,
    image_from_base64,
    image_from_bytes,
    image_from_file,
    rotate_image,
)
from vischeck.models.geometry import Region


def _checker(width: int = 40, height: int = 30) -> np.ndarray:
    """Return a BGR image with distinct values in every pixel."""
    rng = np.random.default_rng(seed=7)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


class TestPngEncoding:
    """Tests for PNG encode and decode helpers."""

    def test_png_signature(self) -> None:
        """encode_as_png produces bytes with the PNG magic number."""
        data = encode_as_png(_checker())
        assert data[:8] == b"\x89PNG\r\n\x1a\n"

    def test_decode_is_lossless(self) -> None:
        """PNG is lossless, so decoding restores the exact pixels."""
        image = _checker()
        assert np.array_equal(image_from_bytes(encode_as_png(image)), image)

    def test_base64_decode(self) -> None:
        """base64_from_image output decodes back to the same pixels."""
        image = _checker()
        assert np.array_equal(image_from_base64(base64_from_image(image)), image)

    def test_invalid_bytes_raise(self) -> None:
        """Garbage bytes are rejected."""
        with pytest.raises(ValueError, match="decode"):
            image_from_bytes(b"not an image")

    def test_empty_base64_raises(self) -> None:
        """An empty base64 string is rejected."""
        with pytest.raises(ValueError, match="non-empty"):
            image_from_base64("")

    def test_invalid_base64_raises(self) -> None:
        """Malformed base64 is rejected."""
        with pytest.raises(ValueError):
            image_from_base64("***")

    def test_valid_base64_of_garbage_raises(self) -> None:
        """Valid base64 that is not an image is rejected."""
        with pytest.raises(ValueError):
            image_from_base64(base64.b64encode(b"hello").decode("ascii"))


class TestImageFromFile:
    """Tests for image_from_file."""

    def test_reads_png(self, tmp_path) -> None:
        """A PNG written to disk loads back unchanged."""
        image = _checker()
        path = tmp_path / "shot.png"
        path.write_bytes(encode_as_png(image))
        assert np.array_equal(image_from_file(str(path)), image)

    def test_missing_file_raises(self, tmp_path) -> None:
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            image_from_file(str(tmp_path / "missing.png"))


class TestGetImagePart:
    """Tests for get_image_part cropping."""

    def test_crop_shape_and_pixels(self) -> None:
        """The crop has the region's size and pixels."""
        image = _checker()
        part = get_image_part(image, Region(5, 10, 20, 15))
        assert part.shape == (15, 20, 3)
        assert np.array_equal(part, image[10:25, 5:25])

    def test_crop_is_copy(self) -> None:
        """Writing to the crop leaves the source untouched."""
        image = _checker()
        before = image.copy()
        part = get_image_part(image, Region(0, 0, 10, 10))
        part[:] = 0
        assert np.array_equal(image, before)

    def test_whole_image(self) -> None:
        """Cropping to the full bounds returns the whole image."""
        image = _checker()
        assert np.array_equal(get_image_part(image, Region(0, 0, 40, 30)), image)

    def test_outside_raises(self) -> None:
        """A region past the image edge is rejected."""
        with pytest.raises(ValueError, match="outside"):
            get_image_part(_checker(), Region(30, 0, 20, 10))


class TestRotateImage:
    """Tests for rotate_image."""

    def test_zero_degrees_keeps_image(self) -> None:
        """A zero rotation preserves size and pixels."""
        image = _checker()
        rotated = rotate_image(image, 0)
        assert rotated.shape == image.shape
        assert np.array_equal(rotated, image)

    def test_quarter_turn_swaps_dimensions(self) -> None:
        """A 90 degree rotation swaps width and height."""
        rotated = rotate_image(_checker(40, 30), 90)
        assert rotated.shape[:2] == (40, 30)

    def test_quarter_turn_is_clockwise(self) -> None:
        """The top-left corner moves to the top-right after 90 degrees."""
        image = np.zeros((20, 20, 3), dtype=np.uint8)
        image[0:5, 0:5] = 255
        rotated = rotate_image(image, 90)
        assert rotated[1, 17].max() == 255
        assert rotated[17, 1].max() == 0

    def test_diagonal_rotation_grows_canvas(self) -> None:
        """A 45 degree rotation needs a larger canvas."""
        rotated = rotate_image(_checker(40, 40), 45)
        assert rotated.shape[0] > 40
        assert rotated.shape[1] > 40
