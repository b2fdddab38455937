"""Screenshot abstraction used as the frame of reference for checks.

A ``Screenshot`` couples captured pixels with the knowledge of where
those pixels sit in the application's coordinate spaces.  It is the
sole authority for translating regions and points into its own pixel
grid, which is what both cropping (``get_sub_screenshot``) and trigger
recording (``get_intersected_region``, ``get_location_in_screenshot``)
rely on.

``ViewportScreenshot`` is the concrete implementation for a capture of
the visible viewport, optionally cropped.  Drivers that need a
different mapping subclass ``Screenshot`` directly.

Typical usage::

    shot = ViewportScreenshot(frame, scroll_position=Location(0, 400))
    control = shot.get_intersected_region(
        Region(10, 420, 200, 30),
        CoordinatesType.CONTEXT_RELATIVE,
        CoordinatesType.SCREENSHOT_AS_IS,
    )
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import NDArray

from vischeck.core.coordinates import CoordinatesType, CoordinateTranslator
from vischeck.core.image_utils import get_image_part
from vischeck.exceptions import OutOfBoundsError
from vischeck.models.geometry import EMPTY, Location, Region

logger = logging.getLogger(__name__)


class Screenshot(ABC):
    """Abstract screenshot with coordinate-space awareness."""

    @abstractmethod
    def get_image(self) -> NDArray[np.uint8]:
        """Return the screenshot pixels.

        Returns:
            A ``(H, W, 3)`` BGR ``uint8`` array.
        """

    @abstractmethod
    def get_sub_screenshot(
        self,
        region: Region,
        coordinates_type: CoordinatesType,
        throw_if_clipped: bool = False,
    ) -> Screenshot:
        """Crop the screenshot to ``region``.

        Args:
            region: The region to crop to.
            coordinates_type: The space ``region`` is expressed in.
            throw_if_clipped: Raise if ``region`` is only partially
                inside the screenshot.

        Returns:
            A new screenshot of the cropped area.

        Raises:
            OutOfBoundsError: If ``region`` does not intersect the
                screenshot, or is clipped while ``throw_if_clipped``.
        """

    @abstractmethod
    def get_intersected_region(
        self,
        region: Region,
        from_: CoordinatesType,
        to: CoordinatesType,
    ) -> Region:
        """Clip ``region`` to the screenshot's bounds.

        Args:
            region: The region to clip.  Not modified.
            from_: The space ``region`` is expressed in.
            to: The space of the returned region.

        Returns:
            The clipped region in ``to`` space, or ``EMPTY`` if
            ``region`` does not overlap the screenshot.
        """

    @abstractmethod
    def get_location_in_screenshot(
        self,
        location: Location,
        from_: CoordinatesType,
    ) -> Location:
        """Convert a point into the screenshot's pixel space.

        Args:
            location: The point to convert.  Not modified.
            from_: The space ``location`` is expressed in.

        Returns:
            The point in ``SCREENSHOT_AS_IS`` space.

        Raises:
            OutOfBoundsError: If the point lies outside the screenshot.
        """

    def get_bounds(self) -> Region:
        """Return the screenshot's own bounds in its pixel space."""
        height, width = self.get_image().shape[:2]
        return Region(0, 0, width, height)


class ViewportScreenshot(Screenshot):
    """A screenshot of (part of) the application's viewport.

    Args:
        image: Captured pixels as a ``(H, W, 3)`` BGR ``uint8`` array.
        scroll_position: Document-relative scroll offset of the
            viewport at capture time.
        frame_location: Document-relative location of the image's
            top-left pixel.  Defaults to ``scroll_position``, which is
            correct for a full viewport capture.
    """

    def __init__(
        self,
        image: NDArray[np.uint8],
        scroll_position: Location | None = None,
        frame_location: Location | None = None,
    ) -> None:
        scroll = scroll_position or Location(0, 0)
        self._image = image
        self._translator = CoordinateTranslator(frame_location or scroll, scroll)

    @classmethod
    def _from_translator(
        cls,
        image: NDArray[np.uint8],
        translator: CoordinateTranslator,
    ) -> ViewportScreenshot:
        return cls(
            image,
            scroll_position=translator.scroll_position,
            frame_location=translator.frame_location,
        )

    @property
    def translator(self) -> CoordinateTranslator:
        return self._translator

    def get_image(self) -> NDArray[np.uint8]:
        return self._image

    def convert_location(
        self,
        location: Location,
        from_: CoordinatesType,
        to: CoordinatesType,
    ) -> Location:
        return self._translator.convert_location(location, from_, to)

    def get_intersected_region(
        self,
        region: Region,
        from_: CoordinatesType,
        to: CoordinatesType,
    ) -> Region:
        if region.is_empty():
            return region.copy()

        intersected = self._translator.convert_region(
            region, from_, CoordinatesType.SCREENSHOT_AS_IS
        )
        intersected.intersect(self.get_bounds())
        # Regions that only touch an edge leave nothing visible.
        if intersected.width == 0 or intersected.height == 0:
            return EMPTY.copy()

        return self._translator.convert_region(
            intersected, CoordinatesType.SCREENSHOT_AS_IS, to
        )

    def get_location_in_screenshot(
        self,
        location: Location,
        from_: CoordinatesType,
    ) -> Location:
        result = self._translator.convert_location(
            location, from_, CoordinatesType.SCREENSHOT_AS_IS
        )
        if not self.get_bounds().contains(result):
            raise OutOfBoundsError(
                f"Location {location} ({from_.value}) is not visible in screenshot"
            )
        return result

    def get_sub_screenshot(
        self,
        region: Region,
        coordinates_type: CoordinatesType,
        throw_if_clipped: bool = False,
    ) -> ViewportScreenshot:
        logger.debug("get_sub_screenshot(%s, %s, %s)", region, coordinates_type.value, throw_if_clipped)

        as_is = self.get_intersected_region(
            region, coordinates_type, CoordinatesType.SCREENSHOT_AS_IS
        )
        if as_is.is_empty():
            raise OutOfBoundsError(f"Region {region} is out of screenshot bounds")
        if throw_if_clipped and as_is.size != region.size:
            raise OutOfBoundsError(
                f"Region {region} is only partially inside the screenshot"
            )

        image = get_image_part(self._image, as_is)
        translator = self._translator.shifted(as_is.left, as_is.top)
        return self._from_translator(image, translator)
