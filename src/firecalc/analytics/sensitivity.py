# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Deterministic FIRE projection and what-if sweeps.

The FIRE number is the balance at which the household's spending equals the
withdrawal rate. The projection compounds the current balance at the expected
real return, adding annual savings at each year end, until it gets there.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..assumptions import RetirementAssumptions
from ..errors import ConfigurationError

MAX_PROJECTION_YEARS = 100
SWEEP_POINTS = 11


def fire_number(annual_spend: float, withdrawal_rate: float) -> float:
    if withdrawal_rate <= 0:
        raise ConfigurationError("withdrawal_rate must be positive")
    return annual_spend / withdrawal_rate


@dataclass(frozen=True)
class FireProjection:
    """Path to financial independence.

    Attributes:
        fire_number: Target balance
        years_to_fire: Years until the target is reached, or None if it is
                       not reached within the projection window
        fire_age: Age at which the target is reached, or None
        balances: Projected balance at the start of each year, through the
                  year the target is reached
    """
    fire_number: float
    years_to_fire: Optional[int]
    fire_age: Optional[int]
    balances: Tuple[float, ...]

    @property
    def reachable(self) -> bool:
        return self.years_to_fire is not None


def project_fire(assumptions: RetirementAssumptions, current_value: float,
                 max_years: int = MAX_PROJECTION_YEARS) -> FireProjection:
    """Project how long until current_value reaches the FIRE number.

    Example:
        >>> a = RetirementAssumptions(30, 65, annual_savings=50_000,
        ...                           expected_annual_spend=40_000, expected_return=0.0)
        >>> project_fire(a, 800_000).years_to_fire
        4
    """
    target = fire_number(assumptions.expected_annual_spend, assumptions.withdrawal_rate)
    value = current_value
    balances = []
    for year in range(max_years + 1):
        balances.append(value)
        if value >= target:
            return FireProjection(target, year, assumptions.current_age + year, tuple(balances))
        value = value * (1 + assumptions.expected_return) + assumptions.annual_savings
    return FireProjection(target, None, None, tuple(balances))


@dataclass(frozen=True)
class SensitivityPoint:
    value: float
    fire_number: float
    years_to_fire: Optional[int]
    is_baseline: bool = False


def _sweep_step(variable: str, baseline: float) -> float:
    if variable == "spend":
        return max(1000.0, round(baseline * 0.10 / 1000) * 1000)
    return max(1000.0, round(max(baseline, 10_000.0) * 0.20 / 1000) * 1000)


def sensitivity_sweep(assumptions: RetirementAssumptions, current_value: float,
                      variable: str = "spend", points: int = SWEEP_POINTS) -> List[SensitivityPoint]:
    """Years to FIRE across values around the baseline spend or savings.

    Args:
        assumptions: Baseline assumptions
        current_value: Current portfolio value
        variable: "spend" (expected_annual_spend) or "savings" (annual_savings)
        points: Number of points, centred on the baseline

    Returns:
        Points in increasing value order; values below zero (or zero spend)
        are skipped
    """
    fields = {"spend": "expected_annual_spend", "savings": "annual_savings"}
    if variable not in fields:
        raise ConfigurationError(f"variable must be 'spend' or 'savings', got {variable!r}")
    field = fields[variable]
    baseline = getattr(assumptions, field)
    step = _sweep_step(variable, baseline)
    half = points // 2

    results = []
    for k in range(-half, points - half):
        value = baseline + k * step
        if value < 0 or (variable == "spend" and value == 0):
            continue
        projection = project_fire(assumptions.replace(**{field: value}), current_value)
        results.append(SensitivityPoint(value, projection.fire_number,
                                        projection.years_to_fire, k == 0))
    return results
