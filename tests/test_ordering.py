"""Tests for threshold ordering policies."""

import numpy as np
import pytest

from msertree.ordering import (
    BrightToDark,
    DarkToBright,
    LevelOrdering,
    Underflow,
    ordering_for,
)


class TestNumericOrderings:
    """Test numeric sweep directions."""

    def test_dark_to_bright(self):
        """Test natural order and subtraction."""
        ordering = DarkToBright(3)
        assert ordering.compare(1, 2) < 0
        assert ordering.compare(2, 2) == 0
        assert ordering.compare(5, 2) > 0
        assert ordering.value_minus_delta(10) == 7

    def test_bright_to_dark(self):
        """Test reversed order steps up numerically."""
        ordering = BrightToDark(3)
        assert ordering.compare(1, 2) > 0
        assert ordering.value_minus_delta(10) == 13
        assert ordering.compare(ordering.value_minus_delta(10), 10) < 0

    def test_float_delta(self):
        """Test fractional thresholds."""
        ordering = DarkToBright(0.25)
        assert ordering.value_minus_delta(1.0) == pytest.approx(0.75)

    @pytest.mark.parametrize("delta", [0, -1, "2", True])
    def test_invalid_delta(self, delta):
        """Test delta validation."""
        with pytest.raises(ValueError, match="delta must be"):
            DarkToBright(delta)

    def test_factory(self):
        """Test ordering_for picks the sweep direction."""
        assert isinstance(ordering_for(2), DarkToBright)
        assert isinstance(ordering_for(2, dark_to_bright=False), BrightToDark)


class TestLevelOrdering:
    """Test ordering over enumerated levels."""

    def test_compare_by_position(self):
        """Test levels compare by their index."""
        ordering = LevelOrdering(["low", "mid", "high"], delta=1)
        assert ordering.compare("low", "high") < 0
        assert ordering.compare("high", "mid") > 0
        assert ordering.compare("mid", "mid") == 0

    def test_step_down(self):
        """Test value_minus_delta steps back by levels."""
        ordering = LevelOrdering("abcde", delta=2)
        assert ordering.value_minus_delta("e") == "c"
        assert ordering.value_minus_delta("c") == "a"

    def test_underflow(self):
        """Test stepping past the first level ranks below every level."""
        ordering = LevelOrdering("abc", delta=2)
        below = ordering.value_minus_delta("b")
        assert below == Underflow(-1)
        assert ordering.compare(below, "a") < 0
        assert ordering.compare("a", below) > 0

    def test_validation(self):
        """Test level and delta validation."""
        with pytest.raises(ValueError, match="must not be empty"):
            LevelOrdering([], delta=1)
        with pytest.raises(ValueError, match="unique"):
            LevelOrdering(["a", "a"], delta=1)
        with pytest.raises(ValueError, match="integer number of levels"):
            LevelOrdering("abc", delta=1.5)
        with pytest.raises(ValueError, match="unknown level"):
            LevelOrdering("abc", delta=1).compare("a", "z")


class TestNumpyScalars:
    """Test orderings over numpy scalar thresholds."""

    @pytest.mark.parametrize("dtype", [np.uint8, np.int64, np.float64])
    def test_compare(self, dtype):
        """Test comparisons return plain ints."""
        ordering = DarkToBright(2)
        assert ordering.compare(dtype(3), dtype(1)) == 1
        assert ordering.compare(dtype(1), dtype(3)) == -1
        assert ordering.compare(dtype(2), dtype(2)) == 0
        assert BrightToDark(2).compare(dtype(3), dtype(1)) == -1

    def test_unsigned_step_does_not_wrap(self):
        """Test stepping below zero on uint8 values stays below the value."""
        ordering = DarkToBright(2)
        below = ordering.value_minus_delta(np.uint8(1))
        assert below == -1
        assert ordering.compare(below, np.uint8(1)) < 0

    def test_narrow_step_up_does_not_wrap(self):
        """Test stepping past the dtype maximum in a bright-to-dark sweep."""
        ordering = BrightToDark(np.uint8(3))
        above = ordering.value_minus_delta(np.uint8(254))
        assert above == 257
        assert ordering.compare(above, np.uint8(254)) < 0
