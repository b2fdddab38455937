"""Coordinate spaces and the translator between them.

Three coordinate spaces are recognised:

* ``CONTEXT_RELATIVE`` -- relative to the logical document (the whole
  scrollable page or window content).
* ``CONTEXT_AS_IS`` -- relative to the visible viewport of the context,
  i.e. document coordinates minus the current scroll position.
* ``SCREENSHOT_AS_IS`` -- the screenshot's own pixel grid.

A ``CoordinateTranslator`` is created for every screenshot.  It knows
where the screenshot's top-left pixel lies in the document and where the
viewport was scrolled to when the screenshot was taken.  Conversions are
pure offsets and are always routed through the document space.  They
are directional: converting a clipped region back does not restore the
original.

This module depends only on ``vischeck.models.geometry``.
"""

from __future__ import annotations

from enum import Enum

from vischeck.models.geometry import Location, Region


class CoordinatesType(Enum):
    """Named frame of reference for a region or a point.

    Attributes:
        CONTEXT_AS_IS: Relative to the context's visible viewport.
        CONTEXT_RELATIVE: Relative to the context's document.
        SCREENSHOT_AS_IS: Relative to the screenshot's pixel grid.
    """

    CONTEXT_AS_IS = "context_as_is"
    CONTEXT_RELATIVE = "context_relative"
    SCREENSHOT_AS_IS = "screenshot_as_is"


class CoordinateTranslator:
    """Converts points and regions between coordinate spaces.

    Args:
        frame_location: Document-relative location of the screenshot's
            top-left pixel.
        scroll_position: Document-relative location of the viewport's
            top-left corner at capture time.
    """

    def __init__(
        self,
        frame_location: Location | None = None,
        scroll_position: Location | None = None,
    ) -> None:
        self._frame_location = (frame_location or Location(0, 0)).copy()
        self._scroll_position = (scroll_position or Location(0, 0)).copy()

    @property
    def frame_location(self) -> Location:
        return self._frame_location.copy()

    @property
    def scroll_position(self) -> Location:
        return self._scroll_position.copy()

    def shifted(self, dx: int, dy: int) -> CoordinateTranslator:
        """Return a translator for a screenshot cropped at ``(dx, dy)``.

        The crop origin is given in the current screenshot's pixel
        space.  The scroll position is unchanged.
        """
        frame = self._frame_location.copy()
        frame.offset(dx, dy)
        return CoordinateTranslator(frame, self._scroll_position)

    def convert_location(
        self,
        location: Location,
        from_: CoordinatesType,
        to: CoordinatesType,
    ) -> Location:
        """Convert a point from one coordinate space to another.

        The input is never modified.

        Args:
            location: The point to convert.
            from_: The space ``location`` is expressed in.
            to: The target space.

        Returns:
            A new ``Location`` in the target space.
        """
        result = location.copy()
        if from_ is to:
            return result

        # Normalise to document space first.
        if from_ is CoordinatesType.CONTEXT_AS_IS:
            result.offset_by(self._scroll_position)
        elif from_ is CoordinatesType.SCREENSHOT_AS_IS:
            result.offset_by(self._frame_location)

        if to is CoordinatesType.CONTEXT_AS_IS:
            result.offset(-self._scroll_position.x, -self._scroll_position.y)
        elif to is CoordinatesType.SCREENSHOT_AS_IS:
            result.offset(-self._frame_location.x, -self._frame_location.y)
        return result

    def convert_region(
        self,
        region: Region,
        from_: CoordinatesType,
        to: CoordinatesType,
    ) -> Region:
        """Convert a region's location between coordinate spaces.

        Size is preserved.  An empty region converts to an empty region.

        Args:
            region: The region to convert.
            from_: The space ``region`` is expressed in.
            to: The target space.

        Returns:
            A new ``Region`` in the target space.
        """
        result = region.copy()
        if result.is_empty():
            return result
        result.location = self.convert_location(region.location, from_, to)
        return result

    def __repr__(self) -> str:
        return (
            f"CoordinateTranslator(frame_location={self._frame_location}, "
            f"scroll_position={self._scroll_position})"
        )
