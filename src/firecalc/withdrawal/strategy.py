# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Withdrawal strategy configuration.

WithdrawalConfiguration is the flat, user-facing record. Its variant() method
resolves it into exactly one of four strategy variants, each carrying only the
fields that strategy needs. The calculator dispatches on the variant type.
"""

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from ..errors import ConfigurationError
from ..settings import DEFAULT_WITHDRAWAL_RATE

DEFAULT_UPPER_GUARDRAIL_FACTOR = 1.25
DEFAULT_LOWER_GUARDRAIL_FACTOR = 0.80
DEFAULT_GUARDRAIL_ADJUSTMENT = 0.10


class WithdrawalStrategy(str, Enum):
    FIXED_PERCENTAGE = "fixed_percentage"
    DYNAMIC_PERCENTAGE = "dynamic_percentage"
    GUARDRAILS = "guardrails"
    FIXED_DOLLAR = "fixed_dollar"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    WithdrawalStrategy.FIXED_PERCENTAGE: "Fixed Percentage",
    WithdrawalStrategy.DYNAMIC_PERCENTAGE: "Dynamic Percentage",
    WithdrawalStrategy.GUARDRAILS: "Guardrails",
    WithdrawalStrategy.FIXED_DOLLAR: "Fixed Dollar",
}


@dataclass(frozen=True)
class FixedPercentage:
    """Initial balance times rate, never re-based to the current balance."""
    rate: float
    adjust_for_inflation: bool = True


@dataclass(frozen=True)
class DynamicPercentage:
    """Current balance times rate, clamped by fractions of the initial balance."""
    rate: float
    floor: Optional[float] = None
    ceiling: Optional[float] = None


@dataclass(frozen=True)
class Guardrails:
    """Carried withdrawal cut or raised when the current rate leaves its band.

    upper and lower are absolute withdrawal rates.
    """
    rate: float
    upper: float
    lower: float
    adjustment: float = DEFAULT_GUARDRAIL_ADJUSTMENT


@dataclass(frozen=True)
class FixedDollar:
    annual_amount: float
    adjust_for_inflation: bool = True


StrategyVariant = Union[FixedPercentage, DynamicPercentage, Guardrails, FixedDollar]


def default_guardrails(rate: float) -> Tuple[float, float]:
    """Upper and lower guardrail rates derived from the base rate.

    The upper band is capped at 1.0 so very high rates stay valid.
    """
    return min(1.0, rate * DEFAULT_UPPER_GUARDRAIL_FACTOR), rate * DEFAULT_LOWER_GUARDRAIL_FACTOR


def _check_fraction(name: str, value: Optional[float], upper: float = 1.0) -> None:
    if value is not None and not 0.0 <= value <= upper:
        raise ConfigurationError(f"{name} must be between 0 and {upper}, got {value}")


@dataclass(frozen=True)
class WithdrawalConfiguration:
    """How much to take out of the portfolio each year.

    Attributes:
        strategy: Which withdrawal rule applies
        withdrawal_rate: Annual rate as decimal (0.04 for the 4% rule)
        annual_amount: Dollar amount for FIXED_DOLLAR
        adjust_for_inflation: Keep withdrawals constant in real terms. When
                             False, amounts are fixed in nominal dollars and
                             lose purchasing power each year.
        floor_percentage: DYNAMIC_PERCENTAGE minimum, as a fraction of the
                          initial balance
        ceiling_percentage: DYNAMIC_PERCENTAGE maximum, as a fraction of the
                            initial balance
        upper_guardrail: GUARDRAILS rate above which spending is cut.
                         Defaults to withdrawal_rate * 1.25.
        lower_guardrail: GUARDRAILS rate below which spending is raised.
                         Defaults to withdrawal_rate * 0.80.
        guardrail_adjustment_magnitude: Fractional cut or raise per trip
                                        (default 10%)
        fixed_income_real: Legacy income offset in real dollars, used only
                           when no income schedule is configured
        fixed_income_nominal: Legacy income offset in nominal dollars, used
                              only when no income schedule is configured
    """
    strategy: WithdrawalStrategy = WithdrawalStrategy.FIXED_PERCENTAGE
    withdrawal_rate: float = DEFAULT_WITHDRAWAL_RATE
    annual_amount: Optional[float] = None
    adjust_for_inflation: bool = True
    floor_percentage: Optional[float] = None
    ceiling_percentage: Optional[float] = None
    upper_guardrail: Optional[float] = None
    lower_guardrail: Optional[float] = None
    guardrail_adjustment_magnitude: Optional[float] = None
    fixed_income_real: Optional[float] = None
    fixed_income_nominal: Optional[float] = None

    def __post_init__(self):
        try:
            object.__setattr__(self, "strategy", WithdrawalStrategy(self.strategy))
        except ValueError as e:
            raise ConfigurationError(f"Unknown withdrawal strategy: {self.strategy!r}") from e
        self.validate()

    def validate(self) -> None:
        """Raise ConfigurationError if the configuration is unusable."""
        _check_fraction("withdrawal_rate", self.withdrawal_rate)
        _check_fraction("floor_percentage", self.floor_percentage)
        _check_fraction("ceiling_percentage", self.ceiling_percentage)
        _check_fraction("upper_guardrail", self.upper_guardrail)
        _check_fraction("lower_guardrail", self.lower_guardrail)
        _check_fraction("guardrail_adjustment_magnitude", self.guardrail_adjustment_magnitude)

        if self.strategy == WithdrawalStrategy.FIXED_DOLLAR:
            if self.annual_amount is None:
                raise ConfigurationError("Fixed dollar strategy requires annual_amount")
            if self.annual_amount < 0:
                raise ConfigurationError(f"annual_amount cannot be negative: {self.annual_amount}")

        if (self.floor_percentage is not None and self.ceiling_percentage is not None
                and self.floor_percentage > self.ceiling_percentage):
            raise ConfigurationError("floor_percentage cannot exceed ceiling_percentage")

        if self.strategy == WithdrawalStrategy.GUARDRAILS:
            variant = self.variant()
            if variant.lower > variant.upper:
                raise ConfigurationError("lower_guardrail cannot exceed upper_guardrail")

        for name in ("fixed_income_real", "fixed_income_nominal"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ConfigurationError(f"{name} cannot be negative: {value}")

    def variant(self) -> StrategyVariant:
        """Resolve to the strategy variant, filling guardrail defaults."""
        rate = self.withdrawal_rate
        if self.strategy == WithdrawalStrategy.FIXED_PERCENTAGE:
            return FixedPercentage(rate, self.adjust_for_inflation)
        if self.strategy == WithdrawalStrategy.DYNAMIC_PERCENTAGE:
            return DynamicPercentage(rate, self.floor_percentage, self.ceiling_percentage)
        if self.strategy == WithdrawalStrategy.GUARDRAILS:
            default_upper, default_lower = default_guardrails(rate)
            upper = default_upper if self.upper_guardrail is None else self.upper_guardrail
            lower = default_lower if self.lower_guardrail is None else self.lower_guardrail
            adjustment = self.guardrail_adjustment_magnitude
            if adjustment is None:
                adjustment = DEFAULT_GUARDRAIL_ADJUSTMENT
            return Guardrails(rate, upper, lower, adjustment)
        return FixedDollar(self.annual_amount, self.adjust_for_inflation)

    @property
    def has_legacy_income(self) -> bool:
        return bool(self.fixed_income_real) or bool(self.fixed_income_nominal)

    def replace(self, **changes) -> 'WithdrawalConfiguration':
        """Copy with fields replaced (re-validated)."""
        return dataclasses.replace(self, **changes)
