"""Geometry kernel: regions, locations, and sizes.

A ``Region`` is an axis-aligned rectangle in some coordinate space.  The
coordinate space itself is not stored on the region; callers track it
and use the coordinate translator to move between spaces.

``EMPTY`` is the canonical "no region" value.  Absence is tested by
value equality (``region.is_empty()`` or ``region == EMPTY``), never by
a ``None`` check.  ``offset`` and ``intersect`` mutate in place, so any
caller that must not alias its input takes a ``copy()`` first.

Typical usage::

    from vischeck.models.geometry import Region, RectangleSize

    region = Region(0, 0, 1000, 700)
    visible = region.copy()
    visible.intersect(Region(200, 100, 2000, 2000))
    tiles = region.sub_regions(RectangleSize(500, 500))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class Location:
    """A point in integer pixel coordinates.

    Attributes:
        x: Horizontal coordinate.
        y: Vertical coordinate.
    """

    x: int
    y: int

    def offset(self, dx: int, dy: int) -> None:
        """Move the location in place by ``(dx, dy)``."""
        self.x += dx
        self.y += dy

    def offset_by(self, other: Location) -> None:
        """Move the location in place by another location's coordinates."""
        self.offset(other.x, other.y)

    def copy(self) -> Location:
        return Location(self.x, self.y)

    def to_dict(self) -> dict[str, int]:
        return {"x": self.x, "y": self.y}

    def __str__(self) -> str:
        return f"({self.x}, {self.y})"


@dataclass
class RectangleSize:
    """Width and height of a rectangle in pixels.

    Attributes:
        width: Horizontal extent.
        height: Vertical extent.
    """

    width: int
    height: int

    def to_dict(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass
class Region:
    """Axis-aligned rectangle with non-negative size.

    Edges are inclusive: a point lying exactly on the right or bottom
    edge is contained, and two regions that only touch are considered
    intersected.

    Attributes:
        left: Left edge x-coordinate.
        top: Top edge y-coordinate.
        width: Horizontal extent in pixels (must be >= 0).
        height: Vertical extent in pixels (must be >= 0).
    """

    left: int
    top: int
    width: int
    height: int

    def __post_init__(self) -> None:
        """Validate that width and height are non-negative."""
        if self.width < 0:
            raise ValueError(f"Region width must be >= 0, got {self.width}")
        if self.height < 0:
            raise ValueError(f"Region height must be >= 0, got {self.height}")

    # -- Construction ---------------------------------------------------------

    @classmethod
    def from_location_size(cls, location: Location, size: RectangleSize) -> Region:
        """Build a region from its top-left corner and its size."""
        return cls(location.x, location.y, size.width, size.height)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Region:
        """Build a region from its wire representation.

        Args:
            data: Mapping with ``left``, ``top``, ``width`` and
                ``height`` keys.

        Returns:
            A new ``Region``.

        Raises:
            KeyError: If a key is missing.
            ValueError: If width or height is negative.
        """
        return cls(
            left=int(data["left"]),
            top=int(data["top"]),
            width=int(data["width"]),
            height=int(data["height"]),
        )

    def copy(self) -> Region:
        """Return an independent copy of this region."""
        return Region(self.left, self.top, self.width, self.height)

    def to_dict(self) -> dict[str, int]:
        return {
            "left": self.left,
            "top": self.top,
            "width": self.width,
            "height": self.height,
        }

    # -- Accessors ------------------------------------------------------------

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    @property
    def location(self) -> Location:
        """The top-left corner as a new ``Location``."""
        return Location(self.left, self.top)

    @location.setter
    def location(self, location: Location) -> None:
        self.left = location.x
        self.top = location.y

    @property
    def size(self) -> RectangleSize:
        return RectangleSize(self.width, self.height)

    def middle_offset(self) -> Location:
        """Return the centre of the region relative to its top-left corner."""
        return Location(self.width // 2, self.height // 2)

    def is_empty(self) -> bool:
        """Check whether this region equals the ``EMPTY`` sentinel."""
        return self == EMPTY

    # -- In-place mutation ----------------------------------------------------

    def offset(self, dx: int, dy: int) -> None:
        """Move the region in place by ``(dx, dy)``."""
        self.left += dx
        self.top += dy

    def intersect(self, other: Region) -> None:
        """Replace this region with its intersection with ``other``.

        If the regions do not intersect the region becomes ``EMPTY``.

        Args:
            other: The region to intersect with.
        """
        if not self.is_intersected(other):
            self.left, self.top, self.width, self.height = 0, 0, 0, 0
            return

        left = max(self.left, other.left)
        top = max(self.top, other.top)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)

        self.left = left
        self.top = top
        self.width = right - left
        self.height = bottom - top

    # -- Queries --------------------------------------------------------------

    def contains(self, other: Region | Location) -> bool:
        """Check whether a region or a point lies inside this region.

        For a region, every edge of ``other`` must lie within this
        region's edges.  For a point, the test is inclusive on all four
        edges, so a point on the right or bottom edge counts as inside.

        Args:
            other: A ``Region`` or a ``Location``.

        Returns:
            True if ``other`` is contained.
        """
        if isinstance(other, Location):
            return (
                self.left <= other.x <= self.right
                and self.top <= other.y <= self.bottom
            )
        return (
            self.top <= other.top
            and self.left <= other.left
            and self.bottom >= other.bottom
            and self.right >= other.right
        )

    def is_intersected(self, other: Region) -> bool:
        """Check whether the two regions overlap or touch.

        Each axis is tested independently as a closed interval, so
        regions sharing only an edge count as intersected.

        Args:
            other: The region to test against.

        Returns:
            True if the regions intersect.
        """
        horizontal = (
            self.left <= other.left <= self.right
            or other.left <= self.left <= other.right
        )
        vertical = (
            self.top <= other.top <= self.bottom
            or other.top <= self.top <= other.bottom
        )
        return horizontal and vertical

    def sub_regions(self, max_size: RectangleSize) -> list[Region]:
        """Tile the region into sub-regions no larger than ``max_size``.

        Tiles are produced row by row, left to right and top to bottom.
        The last row and column may be smaller than ``max_size``.  When
        ``max_size`` covers the whole region a single tile equal to the
        region is returned.

        Args:
            max_size: Maximum width and height of each tile.

        Returns:
            The tiles in row-major order.

        Raises:
            ValueError: If ``max_size`` has a non-positive dimension.
        """
        if max_size.width <= 0 or max_size.height <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")

        tiles: list[Region] = []
        current_top = self.top
        while current_top < self.bottom:
            current_bottom = min(current_top + max_size.height, self.bottom)
            current_left = self.left
            while current_left < self.right:
                current_right = min(current_left + max_size.width, self.right)
                tiles.append(
                    Region(
                        current_left,
                        current_top,
                        current_right - current_left,
                        current_bottom - current_top,
                    )
                )
                current_left += max_size.width
            current_top += max_size.height
        return tiles

    def __str__(self) -> str:
        return f"({self.left}, {self.top}) {self.width}x{self.height}"


# The canonical "no region" value.  Never mutate it; compare against it.
EMPTY = Region(0, 0, 0, 0)
