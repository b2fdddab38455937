"""Builds the application output sent with every match request.

The provider captures a screenshot through the driver, crops it to the
requested region, compresses it against the previous check's screenshot
and reads the window title.  Compression is an opaque collaborator: any
callable with the ``DeltaCompressor`` signature can be plugged in.  The
default sends the plain PNG.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from vischeck.core.image_utils import encode_as_png
from vischeck.core.screenshot import Screenshot
from vischeck.models.session import AppOutput, AppOutputWithScreenshot, RegionProvider
from vischeck.platform.interface import AppDriver

logger = logging.getLogger(__name__)

# (image, png_bytes, previous_image_or_None) -> compressed bytes
DeltaCompressor = Callable[
    [NDArray[np.uint8], bytes, Optional[NDArray[np.uint8]]],
    bytes,
]


def passthrough_compressor(
    image: NDArray[np.uint8],
    png_bytes: bytes,
    source: NDArray[np.uint8] | None,
) -> bytes:
    """Return the PNG bytes unchanged."""
    return png_bytes


class AppOutputProvider:
    """Captures and packages the application output for a check.

    Args:
        driver: Automation driver supplying screenshots and the title.
        compressor: Delta compressor applied against the previous
            screenshot.  Defaults to ``passthrough_compressor``.
    """

    def __init__(
        self,
        driver: AppDriver,
        compressor: DeltaCompressor | None = None,
    ) -> None:
        self._driver = driver
        self._compressor = compressor or passthrough_compressor

    def get_app_output(
        self,
        region_provider: RegionProvider,
        last_screenshot: Screenshot | None,
    ) -> AppOutputWithScreenshot:
        """Capture, crop, compress and title the current application state.

        Args:
            region_provider: Region to crop to; ``EMPTY`` keeps the
                whole screenshot.
            last_screenshot: Screenshot of the previous check used as
                the compression reference, or ``None``.

        Returns:
            The app output together with the (cropped) screenshot.

        Raises:
            OutOfBoundsError: If the region is outside the screenshot.
        """
        logger.debug("get_app_output: capturing screenshot")
        screenshot = self._driver.get_screenshot()

        region = region_provider.region
        if not region.is_empty():
            screenshot = screenshot.get_sub_screenshot(
                region, region_provider.coordinates_type, False
            )

        screenshot64 = self.compress_screenshot64(screenshot, last_screenshot)
        title = self._driver.get_title()
        logger.debug("get_app_output: done (title=%r)", title)
        return AppOutputWithScreenshot(
            app_output=AppOutput(title=title, screenshot64=screenshot64),
            screenshot=screenshot,
        )

    def compress_screenshot64(
        self,
        screenshot: Screenshot,
        last_screenshot: Screenshot | None,
    ) -> str:
        """Compress ``screenshot`` against ``last_screenshot`` as base64."""
        image = screenshot.get_image()
        png_bytes = encode_as_png(image)
        source = last_screenshot.get_image() if last_screenshot is not None else None
        compressed = self._compressor(image, png_bytes, source)
        return base64.b64encode(compressed).decode("ascii")
