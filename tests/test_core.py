"""Tests for core data structures."""

import numpy as np
import pytest

from msertree.core import ComponentRecord, Mser, PixelList


class TestPixelList:
    """Test PixelList functionality."""

    def test_add_and_iterate(self):
        """Test insertion order is preserved."""
        pixels = PixelList()
        for i in (5, 3, 9):
            pixels.add(i)
        assert len(pixels) == 3
        assert list(pixels) == [5, 3, 9]
        assert 3 in pixels
        assert 4 not in pixels

    def test_merge(self):
        """Test merged pixels are appended."""
        a, b = PixelList([1, 2]), PixelList([3])
        a.merge(b)
        assert list(a) == [1, 2, 3]
        assert list(b) == [3]

    def test_copy_is_independent(self):
        """Test a copy does not follow later additions."""
        pixels = PixelList([1])
        snapshot = pixels.copy()
        pixels.add(2)
        assert list(snapshot) == [1]


class TestComponentRecord:
    """Test ComponentRecord accumulation."""

    def test_add_position_sums(self):
        """Test position sums and products."""
        record = ComponentRecord(0)
        record.add_position("a", (1, 2))
        record.add_position("b", (3, 4))

        assert record.size == 2
        np.testing.assert_allclose(record.sum_pos, [4, 6])
        # xx, xy, yy
        np.testing.assert_allclose(record.sum_squ_pos, [10, 14, 20])

    def test_add_pixel_from_flat_index(self):
        """Test flat indices are converted to positions."""
        record = ComponentRecord(0)
        record.add_pixel(7, (3, 5))
        np.testing.assert_allclose(record.sum_pos, [1, 2])
        assert list(record.pixels) == [7]

    def test_position_dimension_mismatch(self):
        """Test positions must match the record dimensionality."""
        record = ComponentRecord(0, n=3)
        with pytest.raises(ValueError, match="3 coordinates"):
            record.add_position(0, (1, 2))
        with pytest.raises(ValueError, match="3 dimensions"):
            record.add_pixel(0, (4, 4))

    def test_invalid_dimensions(self):
        """Test dimensionality validation."""
        with pytest.raises(ValueError, match="positive integer"):
            ComponentRecord(0, n=0)

    def test_merge(self):
        """Test merging absorbs pixels and sums and records the child."""
        a, b = ComponentRecord(0), ComponentRecord(0)
        a.add_position(0, (0, 0))
        b.add_position(1, (2, 2))
        b.evaluation_node = 0

        a.merge(b)
        assert a.size == 2
        assert a.children == [b]
        np.testing.assert_allclose(a.sum_pos, [2, 2])

    def test_merge_requires_finalized(self):
        """Test merging a record that never produced a node."""
        a, b = ComponentRecord(0), ComponentRecord(0)
        with pytest.raises(RuntimeError, match="must be finalized"):
            a.merge(b)

    def test_merge_dimension_mismatch(self):
        """Test merging records of different dimensionality."""
        a, b = ComponentRecord(0, n=2), ComponentRecord(0, n=3)
        b.evaluation_node = 0
        with pytest.raises(ValueError, match="cannot merge"):
            a.merge(b)


class TestMser:
    """Test Mser records."""

    def test_to_mask(self):
        """Test rendering flat pixel ids as a mask."""
        mser = Mser(
            value=3,
            score=0.1,
            size=2,
            pixels=PixelList([0, 5]),
            mean=np.zeros(2),
            cov=np.zeros(3),
        )
        mask = mser.to_mask((2, 3))
        assert mask.dtype == bool
        assert mask.sum() == 2
        assert mask[0, 0] and mask[1, 2]

    def test_defaults(self):
        """Test tree links start empty."""
        mser = Mser(3, 0.0, 1, PixelList([0]), np.zeros(2), np.zeros(3))
        assert mser.parent is None
        assert mser.children == []
