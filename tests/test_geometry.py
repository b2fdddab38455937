"""Unit tests for vischeck geometry models.

Covers Location, RectangleSize and Region: construction, validation,
in-place mutation, containment, intersection and tiling.
"""

from __future__ import annotations

import pytest

from vischeck.models.geometry import EMPTY, Location, RectangleSize, Region

# ==================================================================
# Location
# ==================================================================


class TestLocation:
    """Tests for the Location dataclass."""

    def test_offset_mutates_in_place(self) -> None:
        """offset moves the point by the given deltas."""
        loc = Location(3, 4)
        loc.offset(10, -2)
        assert loc == Location(13, 2)

    def test_offset_by_adds_other_location(self) -> None:
        """offset_by adds another location's coordinates."""
        loc = Location(1, 1)
        loc.offset_by(Location(5, 7))
        assert loc == Location(6, 8)

    def test_copy_is_independent(self) -> None:
        """Mutating a copy leaves the original unchanged."""
        original = Location(2, 2)
        clone = original.copy()
        clone.offset(1, 1)
        assert original == Location(2, 2)

    def test_str(self) -> None:
        """Locations print as '(x, y)'."""
        assert str(Location(5, 9)) == "(5, 9)"

    def test_to_dict(self) -> None:
        """to_dict produces the x/y wire form."""
        assert Location(1, 2).to_dict() == {"x": 1, "y": 2}


class TestRectangleSize:
    """Tests for the RectangleSize dataclass."""

    def test_str(self) -> None:
        """Sizes print as 'WxH'."""
        assert str(RectangleSize(800, 600)) == "800x600"

    def test_equality_is_by_value(self) -> None:
        """Two sizes with equal dimensions are equal."""
        assert RectangleSize(10, 20) == RectangleSize(10, 20)


# ==================================================================
# Region
# ==================================================================


class TestRegionConstruction:
    """Tests for Region construction and validation."""

    def test_negative_width_raises(self) -> None:
        """A negative width is rejected."""
        with pytest.raises(ValueError, match="width"):
            Region(0, 0, -1, 10)

    def test_negative_height_raises(self) -> None:
        """A negative height is rejected."""
        with pytest.raises(ValueError, match="height"):
            Region(0, 0, 10, -5)

    def test_negative_location_allowed(self) -> None:
        """Negative left/top are valid (regions above or left of origin)."""
        region = Region(-10, -20, 5, 5)
        assert region.left == -10
        assert region.top == -20

    def test_from_location_size(self) -> None:
        """from_location_size combines a corner and a size."""
        region = Region.from_location_size(Location(3, 4), RectangleSize(10, 20))
        assert region == Region(3, 4, 10, 20)

    def test_from_dict_to_dict(self) -> None:
        """from_dict accepts the wire form that to_dict produces."""
        data = {"left": 1, "top": 2, "width": 3, "height": 4}
        assert Region.from_dict(data).to_dict() == data

    def test_from_dict_missing_key_raises(self) -> None:
        """from_dict raises KeyError for a missing field."""
        with pytest.raises(KeyError):
            Region.from_dict({"left": 1, "top": 2, "width": 3})

    def test_str(self) -> None:
        """Regions print as '(left, top) WxH'."""
        assert str(Region(1, 2, 30, 40)) == "(1, 2) 30x40"


class TestRegionAccessors:
    """Tests for derived Region properties."""

    def test_right_and_bottom(self) -> None:
        """right and bottom are exclusive edges."""
        region = Region(10, 20, 30, 40)
        assert region.right == 40
        assert region.bottom == 60

    def test_location_setter_moves_region(self) -> None:
        """Assigning location moves the region without resizing it."""
        region = Region(0, 0, 5, 5)
        region.location = Location(7, 8)
        assert region == Region(7, 8, 5, 5)

    def test_location_returns_new_object(self) -> None:
        """Mutating the returned location does not move the region."""
        region = Region(1, 1, 5, 5)
        loc = region.location
        loc.offset(100, 100)
        assert region.left == 1

    def test_size(self) -> None:
        """size returns width and height."""
        assert Region(0, 0, 4, 6).size == RectangleSize(4, 6)

    def test_middle_offset(self) -> None:
        """middle_offset is the centre relative to the top-left corner."""
        assert Region(100, 100, 10, 7).middle_offset() == Location(5, 3)

    def test_is_empty_only_for_empty_sentinel(self) -> None:
        """is_empty is a value test against (0, 0, 0, 0)."""
        assert Region(0, 0, 0, 0).is_empty()
        assert not Region(5, 5, 0, 0).is_empty()
        assert not Region(0, 0, 1, 1).is_empty()


class TestRegionMutation:
    """Tests for in-place offset and intersect."""

    def test_offset(self) -> None:
        """offset moves the region in place."""
        region = Region(1, 2, 3, 4)
        region.offset(10, 20)
        assert region == Region(11, 22, 3, 4)

    def test_copy_is_independent(self) -> None:
        """Mutating a copy leaves the original unchanged."""
        original = Region(1, 1, 1, 1)
        clone = original.copy()
        clone.offset(5, 5)
        assert original == Region(1, 1, 1, 1)

    def test_intersect_overlapping(self) -> None:
        """Overlapping regions intersect to their common area."""
        region = Region(0, 0, 100, 100)
        region.intersect(Region(50, 60, 100, 100))
        assert region == Region(50, 60, 50, 40)

    def test_intersect_disjoint_becomes_empty(self) -> None:
        """Disjoint regions intersect to EMPTY."""
        region = Region(0, 0, 10, 10)
        region.intersect(Region(50, 50, 10, 10))
        assert region.is_empty()

    def test_intersect_with_empty(self) -> None:
        """Intersecting a region away from the origin with EMPTY yields EMPTY."""
        region = Region(10, 10, 20, 20)
        region.intersect(EMPTY)
        assert region == EMPTY

    def test_intersect_touching_edge_has_zero_width(self) -> None:
        """Regions sharing only an edge intersect with zero width."""
        region = Region(0, 0, 10, 10)
        region.intersect(Region(10, 0, 10, 10))
        assert region == Region(10, 0, 0, 10)

    def test_empty_sentinel_not_mutated(self) -> None:
        """Operating on a copy of EMPTY never changes EMPTY."""
        clone = EMPTY.copy()
        clone.offset(5, 5)
        assert EMPTY == Region(0, 0, 0, 0)


class TestRegionContains:
    """Tests for Region.contains."""

    def test_contains_self(self) -> None:
        """Every region contains itself."""
        region = Region(3, 4, 50, 60)
        assert region.contains(region)

    def test_contains_inner_region(self) -> None:
        """A fully nested region is contained."""
        assert Region(0, 0, 100, 100).contains(Region(10, 10, 20, 20))

    def test_does_not_contain_overflowing_region(self) -> None:
        """A region sticking out on one side is not contained."""
        assert not Region(0, 0, 100, 100).contains(Region(90, 10, 20, 20))

    def test_contains_location_inclusive_edges(self) -> None:
        """Points on all four edges, including right and bottom, are inside."""
        region = Region(0, 0, 10, 10)
        assert region.contains(Location(0, 0))
        assert region.contains(Location(10, 10))
        assert region.contains(Location(10, 0))
        assert region.contains(Location(0, 10))

    def test_does_not_contain_location_outside(self) -> None:
        """Points past the edges are outside."""
        region = Region(0, 0, 10, 10)
        assert not region.contains(Location(11, 5))
        assert not region.contains(Location(5, -1))


class TestRegionIsIntersected:
    """Tests for Region.is_intersected."""

    def test_overlapping(self) -> None:
        """Overlapping regions intersect in both directions."""
        a = Region(0, 0, 10, 10)
        b = Region(5, 5, 10, 10)
        assert a.is_intersected(b)
        assert b.is_intersected(a)

    def test_touching_counts_as_intersected(self) -> None:
        """Closed intervals make shared edges intersect."""
        assert Region(0, 0, 10, 10).is_intersected(Region(10, 10, 5, 5))

    def test_disjoint(self) -> None:
        """Separated regions do not intersect."""
        assert not Region(0, 0, 10, 10).is_intersected(Region(11, 0, 5, 5))

    def test_nested(self) -> None:
        """A region nested inside another intersects it."""
        assert Region(0, 0, 100, 100).is_intersected(Region(40, 40, 5, 5))


class TestRegionSubRegions:
    """Tests for Region.sub_regions tiling."""

    def test_max_size_covering_region_gives_single_tile(self) -> None:
        """A tile size at least the region size yields the region itself."""
        region = Region(5, 5, 30, 20)
        tiles = region.sub_regions(RectangleSize(30, 20))
        assert tiles == [region]
        assert region.sub_regions(RectangleSize(100, 100)) == [region]

    def test_row_major_order(self) -> None:
        """Tiles are produced row by row, left to right."""
        tiles = Region(0, 0, 20, 20).sub_regions(RectangleSize(10, 10))
        assert tiles == [
            Region(0, 0, 10, 10),
            Region(10, 0, 10, 10),
            Region(0, 10, 10, 10),
            Region(10, 10, 10, 10),
        ]

    def test_edge_tiles_are_truncated(self) -> None:
        """The last row and column are cut to the region's edges."""
        tiles = Region(0, 0, 25, 15).sub_regions(RectangleSize(10, 10))
        assert len(tiles) == 6
        assert tiles[2] == Region(20, 0, 5, 10)
        assert tiles[-1] == Region(20, 10, 5, 5)

    def test_tiles_reconstruct_region_without_overlap(self) -> None:
        """Tiles cover every pixel of the region exactly once."""
        region = Region(3, 7, 47, 31)
        tiles = region.sub_regions(RectangleSize(8, 6))

        covered: set[tuple[int, int]] = set()
        total = 0
        for tile in tiles:
            assert region.contains(tile)
            for x in range(tile.left, tile.right):
                for y in range(tile.top, tile.bottom):
                    covered.add((x, y))
                    total += 1

        assert total == region.width * region.height
        assert len(covered) == total

    def test_non_positive_max_size_raises(self) -> None:
        """A zero tile dimension is rejected."""
        with pytest.raises(ValueError, match="max_size"):
            Region(0, 0, 10, 10).sub_regions(RectangleSize(0, 5))
