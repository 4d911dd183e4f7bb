"""Tests for utility functions."""

import warnings

import numpy as np
import pytest

from msertree.utils import (
    covariance_size,
    position_moments,
    upper_triangle,
    validate_size_range,
    warn_on_diversity,
)


class TestMoments:
    """Test positional moments."""

    def test_covariance_size(self):
        """Test number of independent covariance entries."""
        assert covariance_size(1) == 1
        assert covariance_size(2) == 3
        assert covariance_size(3) == 6

    def test_upper_triangle_order(self):
        """Test row-major upper triangle flattening."""
        matrix = np.arange(9).reshape(3, 3)
        np.testing.assert_array_equal(upper_triangle(matrix), [0, 1, 2, 4, 5, 8])

    def test_upper_triangle_requires_square(self):
        """Test non-square input is rejected."""
        with pytest.raises(ValueError, match="square"):
            upper_triangle(np.zeros((2, 3)))

    def test_position_moments(self):
        """Test mean and population covariance."""
        mean, cov = position_moments([(0, 0), (2, 0), (0, 2), (2, 2)])
        np.testing.assert_allclose(mean, [1, 1])
        np.testing.assert_allclose(cov, [1, 0, 1])

    def test_position_moments_empty(self):
        """Test empty input is rejected."""
        with pytest.raises(ValueError, match="non-empty"):
            position_moments([])


class TestValidation:
    """Test validation functions."""

    def test_size_range_valid(self):
        """Test valid ranges pass."""
        validate_size_range(1, None)
        validate_size_range(5, 5)

    def test_size_range_invalid(self):
        """Test invalid ranges."""
        with pytest.raises(ValueError, match="at least 1"):
            validate_size_range(0, None)
        with pytest.raises(ValueError, match="must not be smaller"):
            validate_size_range(10, 5)

    def test_diversity_warning(self):
        """Test warning for a diversity that prunes almost everything."""
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always")
            warn_on_diversity(0.95)
            warn_on_diversity(0.5)

            assert len(w) == 1
            assert "prune nearly all" in str(w[0].message)
