"""Residual duplicate-rate estimate from a reviewed sample.

A point-in-time audit figure: it is reported, never applied to the data.
"""

import math
from dataclasses import asdict, dataclass
from typing import Any

__all__ = ["DEFAULT_Z", "DuplicateRateEstimate", "estimate_duplicate_rate"]

DEFAULT_Z = 1.96


@dataclass(frozen=True)
class DuplicateRateEstimate:
    """Normal-approximation interval for the duplicate proportion.

    Attributes
    ----------
    duplicates : int
        Duplicates found in the sample (d).
    sample_size : int
        Reviewed sample size (n).
    population_size : int
        Merged population size (N).
    z : float
        Critical value.
    rate : float
        Observed proportion d / n.
    standard_error : float
        sqrt(rate * (1 - rate) / n).
    margin : float
        z * standard_error.
    lower, upper : float
        Interval bounds, clipped to [0, 1].
    population_estimate : float
        N * rate.
    population_lower, population_upper : float
        N * lower and N * upper.
    """

    duplicates: int
    sample_size: int
    population_size: int
    z: float
    rate: float
    standard_error: float
    margin: float
    lower: float
    upper: float
    population_estimate: float
    population_lower: float
    population_upper: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def estimate_duplicate_rate(
    duplicates: int,
    sample_size: int,
    population_size: int,
    z: float = DEFAULT_Z,
) -> DuplicateRateEstimate:
    """Estimate the population duplicate rate from a sample.

    Parameters
    ----------
    duplicates : int
        Confirmed duplicates in the sample.
    sample_size : int
        Number of reviewed records.
    population_size : int
        Size of the merged population.
    z : float, optional
        Critical value; 1.96 gives a 95% interval.

    Returns
    -------
    DuplicateRateEstimate
        Rate, interval and population projection.

    Raises
    ------
    ValueError
        If the sample is empty, ``duplicates`` is outside ``[0, n]``,
        ``population_size`` is negative, or ``z`` is not positive.

    Examples
    --------
    >>> est = estimate_duplicate_rate(20, 400, 10000)
    >>> round(est.standard_error, 4), round(est.margin, 4)
    (0.0109, 0.0214)
    """
    if sample_size <= 0:
        raise ValueError("sample_size must be positive")
    if not 0 <= duplicates <= sample_size:
        raise ValueError(f"duplicates must be in [0, {sample_size}], got {duplicates}")
    if population_size < 0:
        raise ValueError("population_size must be >= 0")
    if z <= 0:
        raise ValueError("z must be positive")

    rate = duplicates / sample_size
    standard_error = math.sqrt(rate * (1 - rate) / sample_size)
    margin = z * standard_error
    lower = max(0.0, rate - margin)
    upper = min(1.0, rate + margin)

    return DuplicateRateEstimate(
        duplicates=duplicates,
        sample_size=sample_size,
        population_size=population_size,
        z=z,
        rate=rate,
        standard_error=standard_error,
        margin=margin,
        lower=lower,
        upper=upper,
        population_estimate=population_size * rate,
        population_lower=population_size * lower,
        population_upper=population_size * upper,
    )
