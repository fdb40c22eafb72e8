"""Tests for the duplicate-rate estimate."""

import pytest

from gamededupe.sampling import estimate_duplicate_rate


@pytest.mark.unit
def test_estimate_reference_values() -> None:
    """Test 20 duplicates in 400 gives 5% with a 2.14% margin."""
    est = estimate_duplicate_rate(20, 400, 10_000)

    assert est.rate == pytest.approx(0.05)
    assert est.standard_error == pytest.approx(0.0109, abs=1e-4)
    assert est.margin == pytest.approx(0.0214, abs=1e-4)
    assert est.lower == pytest.approx(0.05 - est.margin)
    assert est.upper == pytest.approx(0.05 + est.margin)
    assert est.population_estimate == pytest.approx(500)
    assert est.population_lower == pytest.approx(10_000 * est.lower)


@pytest.mark.unit
def test_estimate_no_duplicates() -> None:
    """Test a clean sample yields a zero-width interval at zero."""
    est = estimate_duplicate_rate(0, 50, 1000)

    assert est.rate == 0
    assert est.margin == 0
    assert est.lower == est.upper == 0


@pytest.mark.unit
def test_estimate_bounds_clipped() -> None:
    """Test interval bounds stay inside [0, 1]."""
    est = estimate_duplicate_rate(1, 3, 10, z=5.0)

    assert est.lower == 0.0
    assert est.upper <= 1.0


@pytest.mark.unit
def test_estimate_custom_z() -> None:
    """Test the critical value scales the margin."""
    narrow = estimate_duplicate_rate(20, 400, 100, z=1.0)
    wide = estimate_duplicate_rate(20, 400, 100, z=2.0)

    assert wide.margin == pytest.approx(2 * narrow.margin)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("duplicates", "sample_size", "population_size", "z"),
    [(0, 0, 10, 1.96), (-1, 10, 10, 1.96), (11, 10, 10, 1.96), (1, 10, -1, 1.96), (1, 10, 10, 0)],
)
def test_estimate_rejects_invalid_input(
    duplicates: int, sample_size: int, population_size: int, z: float
) -> None:
    """Test impossible inputs raise ValueError."""
    with pytest.raises(ValueError):
        estimate_duplicate_rate(duplicates, sample_size, population_size, z)


@pytest.mark.unit
def test_estimate_to_dict() -> None:
    """Test the estimate serializes every field."""
    data = estimate_duplicate_rate(20, 400, 10_000).to_dict()

    assert data["duplicates"] == 20
    assert data["sample_size"] == 400
    assert set(data) >= {"rate", "margin", "lower", "upper", "population_estimate"}
