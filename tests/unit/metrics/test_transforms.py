"""Tests for rank, gaussianize and orthogonalize transforms."""

import numpy as np
import pytest

from contriblab.exceptions import ConfigurationError, LengthMismatchError
from contriblab.metrics.transforms import (
    gaussianize,
    normal_quantile,
    orthogonalize,
    tie_kept_rank,
)


# =============================================================================
# RANK TRANSFORM
# =============================================================================


class TestTieKeptRank:
    """Tests for tie_kept_rank."""

    def test_distinct_values(self) -> None:
        """Ranks follow ascending order, 1-based."""
        result = tie_kept_rank([4.0, 3.0, 6.0, 10.0, 2.0])
        np.testing.assert_array_equal(result, [3.0, 2.0, 4.0, 5.0, 1.0])

    def test_ties_keep_original_order(self) -> None:
        """Equal values get distinct ranks, first-seen gets the smaller one."""
        result = tie_kept_rank([3.0, 1.0, 3.0, 2.0])
        np.testing.assert_array_equal(result, [3.0, 1.0, 4.0, 2.0])

    def test_all_equal(self) -> None:
        """All-equal input ranks by position."""
        result = tie_kept_rank([7.0, 7.0, 7.0, 7.0])
        np.testing.assert_array_equal(result, [1.0, 2.0, 3.0, 4.0])

    def test_empty(self) -> None:
        """Empty input returns empty float array."""
        result = tie_kept_rank([])
        assert len(result) == 0
        assert result.dtype == np.float64

    def test_single(self) -> None:
        """Single element ranks to 1.0."""
        np.testing.assert_array_equal(tie_kept_rank([42.0]), [1.0])

    def test_input_not_mutated(self) -> None:
        """Input array is left untouched."""
        x = np.array([3.0, 1.0, 2.0])
        tie_kept_rank(x)
        np.testing.assert_array_equal(x, [3.0, 1.0, 2.0])

    def test_integer_input_returns_float(self) -> None:
        """Integer input is ranked into float64."""
        result = tie_kept_rank(np.array([2, 1, 3]))
        assert result.dtype == np.float64
        np.testing.assert_array_equal(result, [2.0, 1.0, 3.0])


# =============================================================================
# QUANTILE FUNCTION
# =============================================================================


class TestNormalQuantile:
    """Tests for normal_quantile monotonicity and accuracy."""

    @pytest.mark.parametrize("method", ["scipy", "acklam"])
    def test_monotonic_on_decile_centers(self, method: str) -> None:
        """Percentiles 0.05, 0.15, ..., 0.95 map to a non-decreasing sequence."""
        percentiles = np.arange(0.05, 1.0, 0.1)
        output = normal_quantile(percentiles, method)

        for i in range(len(output) - 1):
            assert output[i] <= output[i + 1]

    @pytest.mark.parametrize("method", ["scipy", "acklam"])
    def test_monotonic_dense_grid(self, method: str) -> None:
        """Non-decreasing on a dense grid spanning both tails."""
        percentiles = np.linspace(1e-6, 1 - 1e-6, 20001)
        output = normal_quantile(percentiles, method)
        assert np.all(np.diff(output) >= 0)

    @pytest.mark.parametrize("boundary", [0.02425, 1 - 0.02425])
    def test_acklam_monotonic_across_region_boundaries(self, boundary: float) -> None:
        """No step down where the rational approximation switches regions."""
        percentiles = np.linspace(boundary - 1e-4, boundary + 1e-4, 2001)
        output = normal_quantile(percentiles, "acklam")
        assert np.all(np.diff(output) >= 0)

    def test_acklam_matches_scipy(self) -> None:
        """Hand-rolled approximation agrees with scipy to ~1e-8."""
        percentiles = np.linspace(1e-6, 1 - 1e-6, 5001)
        np.testing.assert_allclose(
            normal_quantile(percentiles, "acklam"),
            normal_quantile(percentiles, "scipy"),
            rtol=1e-8,
            atol=1e-8,
        )

    def test_sign_of_quantiles(self) -> None:
        """Below 0.5 is negative, above is positive, 0.5 is zero."""
        output = normal_quantile([0.1, 0.5, 0.9], "acklam")
        assert output[0] < 0
        assert output[1] == pytest.approx(0.0, abs=1e-12)
        assert output[2] > 0

    def test_unknown_method_raises(self) -> None:
        """Unknown quantile method is a configuration error."""
        with pytest.raises(ConfigurationError, match="Unknown quantile method"):
            normal_quantile([0.5], "box-muller")


# =============================================================================
# GAUSSIANIZER
# =============================================================================


class TestGaussianize:
    """Tests for gaussianize."""

    @pytest.mark.parametrize("method", ["scipy", "acklam"])
    def test_order_preserved(self, method: str) -> None:
        """Correlation with the original ranks stays above 0.99."""
        original = np.arange(1.0, 11.0)
        result = gaussianize(tie_kept_rank(original), method=method)
        assert np.corrcoef(original, result)[0, 1] > 0.99

    @pytest.mark.parametrize("method", ["scipy", "acklam"])
    def test_strictly_monotonic_in_input(self, method: str) -> None:
        """Sorting by input gives strictly increasing output (no sign flip)."""
        rng = np.random.default_rng(7)
        x = rng.standard_t(df=3, size=1000)
        result = gaussianize(x, method=method)
        assert np.all(np.diff(result[np.argsort(x)]) > 0)

    def test_standardized(self) -> None:
        """Output has mean 0 and sample std 1."""
        rng = np.random.default_rng(0)
        result = gaussianize(rng.lognormal(size=500))
        assert result.mean() == pytest.approx(0.0, abs=1e-12)
        assert result.std(ddof=1) == pytest.approx(1.0, rel=1e-12)

    def test_ties_spread_by_position(self) -> None:
        """Tied inputs get increasing quantiles in original order."""
        result = gaussianize([1.0, 1.0, 1.0])
        assert result[0] < result[1] < result[2]

    def test_same_result_from_raw_values_and_ranks(self) -> None:
        """Gaussianizing raw values equals gaussianizing their ranks."""
        x = np.array([0.3, -2.0, 5.5, 0.1, 9.0])
        np.testing.assert_array_equal(gaussianize(x), gaussianize(tie_kept_rank(x)))

    def test_single_returns_float_copy(self) -> None:
        """Length-1 input comes back unchanged as float."""
        x = np.array([5])
        result = gaussianize(x)
        assert result.dtype == np.float64
        np.testing.assert_array_equal(result, [5.0])

    def test_empty(self) -> None:
        """Empty input returns empty output."""
        assert len(gaussianize([])) == 0

    def test_input_not_mutated(self) -> None:
        """Input array is left untouched."""
        x = np.array([3.0, 1.0, 2.0])
        gaussianize(x)
        np.testing.assert_array_equal(x, [3.0, 1.0, 2.0])

    def test_extreme_magnitudes_finite(self) -> None:
        """Magnitudes from 1e-10 to 1e10 produce finite output."""
        x = np.array([1e-10, 1e10, -1e10, 0.0, 1e-5, 3.0])
        assert np.all(np.isfinite(gaussianize(x)))


# =============================================================================
# ORTHOGONALIZER
# =============================================================================


class TestOrthogonalize:
    """Tests for orthogonalize."""

    def test_orthogonal_to_centered_reference(self) -> None:
        """Residual has zero dot product with the centered reference."""
        rng = np.random.default_rng(42)
        x = rng.normal(size=500)
        reference = rng.normal(size=500)

        result = orthogonalize(x, reference)

        assert abs(np.dot(result, reference - reference.mean())) < 1e-8

    def test_residual_is_centered(self) -> None:
        """Residual has zero mean."""
        rng = np.random.default_rng(1)
        result = orthogonalize(rng.normal(5.0, size=200), rng.normal(size=200))
        assert result.mean() == pytest.approx(0.0, abs=1e-12)

    def test_collinear_input_removed(self) -> None:
        """x that is an affine function of reference leaves ~zero residual."""
        reference = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
        result = orthogonalize(3.0 * reference + 2.0, reference)
        np.testing.assert_allclose(result, 0.0, atol=1e-12)

    def test_constant_reference_returns_x(self) -> None:
        """Reference without variance leaves x unchanged (not centered)."""
        x = np.array([1.0, 4.0, 9.0])
        result = orthogonalize(x, [0.1, 0.1, 0.1])
        np.testing.assert_array_equal(result, x)
        assert result is not x

    def test_single_element(self) -> None:
        """n <= 1 returns x as float."""
        np.testing.assert_array_equal(orthogonalize([3], [1]), [3.0])

    def test_length_mismatch(self) -> None:
        """Different lengths raise before computing."""
        with pytest.raises(LengthMismatchError):
            orthogonalize([1.0, 2.0, 3.0], [1.0, 2.0])

    def test_input_not_mutated(self) -> None:
        """Neither input is modified."""
        x = np.array([1.0, 3.0, 2.0, 5.0])
        ref = np.array([2.0, 1.0, 4.0, 3.0])
        orthogonalize(x, ref)
        np.testing.assert_array_equal(x, [1.0, 3.0, 2.0, 5.0])
        np.testing.assert_array_equal(ref, [2.0, 1.0, 4.0, 3.0])
