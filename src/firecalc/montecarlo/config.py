# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""Configuration for Monte Carlo simulations."""

import dataclasses
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional

from ..errors import ConfigurationError
from ..income.schedule import IncomeSchedule, ScheduledIncome
from ..portfolio import AssetClass
from ..settings import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_INFLATION_RATE,
    DEFAULT_INITIAL_PORTFOLIO_VALUE,
    DEFAULT_NUMBER_OF_RUNS,
    DEFAULT_TIME_HORIZON_YEARS,
    EXECUTORS,
    MAX_INFLATION_RATE,
    MAX_NUMBER_OF_RUNS,
    MAX_TIME_HORIZON_YEARS,
    MIN_INFLATION_RATE,
    MIN_NUMBER_OF_RUNS,
    MIN_TIME_HORIZON_YEARS,
    WEIGHT_SUM_TOLERANCE,
    Settings,
)
from ..withdrawal.strategy import WithdrawalConfiguration, WithdrawalStrategy


class InflationStrategy(str, Enum):
    HISTORICAL_CORRELATED = "historical_correlated"
    FIXED_RATE = "fixed_rate"


class SuccessCriterion(str, Enum):
    STRICT = "strict"    # final balance > 0
    LENIENT = "lenient"  # every withdrawal through the final year was met


def _class_map(name: str, values: Optional[Mapping]) -> Optional[Dict[AssetClass, float]]:
    if values is None:
        return None
    result = {}
    for key, value in values.items():
        value = float(value)
        if not math.isfinite(value):
            raise ConfigurationError(f"{name} for {key!r} must be finite")
        result[AssetClass.parse(key)] = value
    return result


@dataclass(frozen=True)
class SimulationParameters:
    """Immutable configuration for one engine invocation.

    Attributes:
        number_of_runs: Number of independent paths (1-100,000)
        time_horizon_years: Years per path (1-50)
        inflation_rate: Constant inflation, used by the fixed-rate strategy
                        and as the fallback when no inflation history exists
        use_historical_bootstrap: Resample historical returns instead of
                                  drawing from normal distributions
        initial_portfolio_value: Starting balance (> 0)
        withdrawal_config: Withdrawal strategy configuration
        retirement_age: Age in simulation year 1; required for the income
                        schedule to pay anything
        custom_allocation_weights: Per-class weights overriding the
                                   portfolio's own; must sum to 1
        income_schedule: Guaranteed income streams
        tax_rate: Flat tax on portfolio draws, 0 <= rate < 1
        rng_seed: Seed for reproducible results
        bootstrap_block_length: Block length for block bootstrap; values
                                above 1 enable it
        custom_returns: Per-class expected return; forces parametric
                        sampling for that class
        custom_volatility: Per-class volatility; forces parametric sampling
                           for that class
        inflation_strategy: Historically-correlated or fixed-rate inflation
    """
    number_of_runs: int = DEFAULT_NUMBER_OF_RUNS
    time_horizon_years: int = DEFAULT_TIME_HORIZON_YEARS
    inflation_rate: float = DEFAULT_INFLATION_RATE
    use_historical_bootstrap: bool = True
    initial_portfolio_value: float = DEFAULT_INITIAL_PORTFOLIO_VALUE
    withdrawal_config: WithdrawalConfiguration = field(default_factory=WithdrawalConfiguration)
    retirement_age: Optional[int] = None
    custom_allocation_weights: Optional[Mapping[AssetClass, float]] = None
    income_schedule: Optional[IncomeSchedule] = None
    tax_rate: Optional[float] = None
    rng_seed: Optional[int] = None
    bootstrap_block_length: Optional[int] = None
    custom_returns: Optional[Mapping[AssetClass, float]] = None
    custom_volatility: Optional[Mapping[AssetClass, float]] = None
    inflation_strategy: InflationStrategy = InflationStrategy.HISTORICAL_CORRELATED

    def __post_init__(self):
        object.__setattr__(self, "custom_allocation_weights",
                           _class_map("custom_allocation_weights", self.custom_allocation_weights))
        object.__setattr__(self, "custom_returns", _class_map("custom_returns", self.custom_returns))
        object.__setattr__(self, "custom_volatility",
                           _class_map("custom_volatility", self.custom_volatility))
        schedule = self.income_schedule
        if schedule is not None and not isinstance(schedule, IncomeSchedule):
            schedule = IncomeSchedule(schedule)
        if schedule is not None and len(schedule) == 0:
            schedule = None
        object.__setattr__(self, "income_schedule", schedule)
        try:
            object.__setattr__(self, "inflation_strategy", InflationStrategy(self.inflation_strategy))
        except ValueError as e:
            raise ConfigurationError(f"Unknown inflation strategy: {self.inflation_strategy!r}") from e
        self.validate()

    def validate(self) -> None:
        """Raise ConfigurationError if any field is out of range."""
        if not MIN_NUMBER_OF_RUNS <= self.number_of_runs <= MAX_NUMBER_OF_RUNS:
            raise ConfigurationError(
                f"Number of runs must be between {MIN_NUMBER_OF_RUNS:,} and {MAX_NUMBER_OF_RUNS:,}"
            )
        if not MIN_TIME_HORIZON_YEARS <= self.time_horizon_years <= MAX_TIME_HORIZON_YEARS:
            raise ConfigurationError(
                f"Time horizon must be between {MIN_TIME_HORIZON_YEARS} and {MAX_TIME_HORIZON_YEARS} years"
            )
        if not MIN_INFLATION_RATE <= self.inflation_rate <= MAX_INFLATION_RATE:
            raise ConfigurationError(
                f"Inflation rate must be between {MIN_INFLATION_RATE:.0%} and {MAX_INFLATION_RATE:.0%}"
            )
        if not self.initial_portfolio_value > 0:
            raise ConfigurationError("Initial portfolio value must be positive")
        if self.retirement_age is not None and self.retirement_age < 0:
            raise ConfigurationError("Retirement age cannot be negative")
        if self.tax_rate is not None and not 0.0 <= self.tax_rate < 1.0:
            raise ConfigurationError(f"Tax rate must be in [0, 1), got {self.tax_rate}")
        if self.bootstrap_block_length is not None and self.bootstrap_block_length < 1:
            raise ConfigurationError("Bootstrap block length must be at least 1")
        if self.rng_seed is not None and self.rng_seed < 0:
            raise ConfigurationError("rng_seed cannot be negative")

        weights = self.custom_allocation_weights
        if weights is not None:
            if any(w < 0 for w in weights.values()):
                raise ConfigurationError("Allocation weights cannot be negative")
            total = sum(weights.values())
            if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
                raise ConfigurationError(f"Allocation weights must sum to 1, got {total:.4f}")

        if self.custom_volatility and any(v < 0 for v in self.custom_volatility.values()):
            raise ConfigurationError("Custom volatility cannot be negative")

        self.withdrawal_config.validate()

    @property
    def block_bootstrap(self) -> bool:
        return self.bootstrap_block_length is not None and self.bootstrap_block_length > 1

    @property
    def overridden_classes(self) -> frozenset:
        """Classes forced to parametric sampling by custom returns/volatility."""
        return frozenset(self.custom_returns or {}) | frozenset(self.custom_volatility or {})

    def replace(self, **changes) -> 'SimulationParameters':
        """Copy with fields replaced (re-validated)."""
        return dataclasses.replace(self, **changes)

    def with_income(self, streams: Iterable[ScheduledIncome],
                    retirement_age: Optional[int] = None) -> 'SimulationParameters':
        changes = {"income_schedule": IncomeSchedule(streams)}
        if retirement_age is not None:
            changes["retirement_age"] = retirement_age
        return self.replace(**changes)

    @classmethod
    def conservative(cls, initial_portfolio_value: float = DEFAULT_INITIAL_PORTFOLIO_VALUE
                     ) -> 'SimulationParameters':
        return cls(
            inflation_rate=0.03,
            initial_portfolio_value=initial_portfolio_value,
            withdrawal_config=WithdrawalConfiguration(WithdrawalStrategy.FIXED_PERCENTAGE, 0.035),
        )

    @classmethod
    def moderate(cls, initial_portfolio_value: float = DEFAULT_INITIAL_PORTFOLIO_VALUE
                 ) -> 'SimulationParameters':
        return cls(
            inflation_rate=0.025,
            initial_portfolio_value=initial_portfolio_value,
            withdrawal_config=WithdrawalConfiguration(WithdrawalStrategy.FIXED_PERCENTAGE, 0.04),
        )

    @classmethod
    def aggressive(cls, initial_portfolio_value: float = DEFAULT_INITIAL_PORTFOLIO_VALUE
                   ) -> 'SimulationParameters':
        return cls(
            inflation_rate=0.02,
            initial_portfolio_value=initial_portfolio_value,
            withdrawal_config=WithdrawalConfiguration(WithdrawalStrategy.DYNAMIC_PERCENTAGE, 0.05),
        )


@dataclass(frozen=True)
class EngineOptions:
    """How the engine executes runs. Does not affect results.

    Attributes:
        success_criterion: What counts as a successful run
        executor: "serial", "thread", or "process"
        max_workers: Worker pool size (None lets concurrent.futures decide)
        batch_size: Runs per work unit; cancellation is checked between units
        keep_runs: Keep per-run trajectories in the result
    """
    success_criterion: SuccessCriterion = SuccessCriterion.STRICT
    executor: str = "serial"
    max_workers: Optional[int] = None
    batch_size: int = DEFAULT_BATCH_SIZE
    keep_runs: bool = True

    def __post_init__(self):
        object.__setattr__(self, "success_criterion", SuccessCriterion(self.success_criterion))
        if self.executor not in EXECUTORS:
            raise ConfigurationError(f"executor must be one of {EXECUTORS}, got {self.executor!r}")
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")
        if self.batch_size < 1:
            raise ConfigurationError("batch_size must be at least 1")

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> 'EngineOptions':
        values = {
            "executor": settings.executor,
            "max_workers": settings.max_workers,
            "batch_size": settings.batch_size,
        }
        values.update(overrides)
        return cls(**values)
