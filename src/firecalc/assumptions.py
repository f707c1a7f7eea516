# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""Household planning assumptions shared by the engine and projection helpers."""

import dataclasses
from dataclasses import dataclass
from typing import Iterable, Optional

from .errors import ConfigurationError
from .income.schedule import ScheduledIncome
from .montecarlo.config import SimulationParameters
from .settings import (
    DEFAULT_INFLATION_RATE,
    DEFAULT_NUMBER_OF_RUNS,
    DEFAULT_WITHDRAWAL_RATE,
    MAX_TIME_HORIZON_YEARS,
)
from .withdrawal.strategy import WithdrawalConfiguration


@dataclass(frozen=True)
class RetirementAssumptions:
    """Ages, savings, and spending targets for one household.

    Attributes:
        current_age: Age today
        target_retirement_age: Age at which withdrawals start
        life_expectancy: Planning age; the simulation horizon runs to it
        annual_savings: Amount saved per year until retirement
        expected_annual_spend: Spending need in today's dollars
        withdrawal_rate: Safe withdrawal rate used for the FIRE number
        expected_return: Real return assumed by deterministic projections
        inflation_rate: Baseline inflation
    """
    current_age: int
    target_retirement_age: int
    life_expectancy: int = 90
    annual_savings: float = 0.0
    expected_annual_spend: float = 0.0
    withdrawal_rate: float = DEFAULT_WITHDRAWAL_RATE
    expected_return: float = 0.05
    inflation_rate: float = DEFAULT_INFLATION_RATE

    def __post_init__(self):
        if self.current_age < 0:
            raise ConfigurationError("current_age cannot be negative")
        if self.target_retirement_age < self.current_age:
            raise ConfigurationError("target_retirement_age cannot be before current_age")
        if self.life_expectancy <= self.target_retirement_age:
            raise ConfigurationError("life_expectancy must be after target_retirement_age")
        if self.annual_savings < 0:
            raise ConfigurationError("annual_savings cannot be negative")
        if self.expected_annual_spend < 0:
            raise ConfigurationError("expected_annual_spend cannot be negative")
        if not 0 < self.withdrawal_rate <= 1:
            raise ConfigurationError("withdrawal_rate must be in (0, 1]")

    @property
    def years_until_retirement(self) -> int:
        return self.target_retirement_age - self.current_age

    @property
    def retirement_years(self) -> int:
        """Simulation horizon, capped at the engine maximum."""
        return min(self.life_expectancy - self.target_retirement_age, MAX_TIME_HORIZON_YEARS)

    @property
    def fire_number(self) -> float:
        return self.expected_annual_spend / self.withdrawal_rate

    def replace(self, **changes) -> 'RetirementAssumptions':
        return dataclasses.replace(self, **changes)

    def to_simulation_parameters(self,
                                 portfolio_value: float,
                                 withdrawal_config: Optional[WithdrawalConfiguration] = None,
                                 income: Iterable[ScheduledIncome] = (),
                                 number_of_runs: int = DEFAULT_NUMBER_OF_RUNS,
                                 **overrides) -> SimulationParameters:
        """Simulation parameters for the retirement phase.

        Args:
            portfolio_value: Balance at retirement
            withdrawal_config: Strategy; defaults to fixed percentage at
                               this household's withdrawal rate
            income: Guaranteed income streams
            number_of_runs: Number of simulated paths
            **overrides: Any other SimulationParameters field
        """
        if withdrawal_config is None:
            withdrawal_config = WithdrawalConfiguration(withdrawal_rate=self.withdrawal_rate)
        values = dict(
            number_of_runs=number_of_runs,
            time_horizon_years=self.retirement_years,
            inflation_rate=self.inflation_rate,
            initial_portfolio_value=portfolio_value,
            withdrawal_config=withdrawal_config,
            retirement_age=self.target_retirement_age,
            income_schedule=tuple(income) or None,
        )
        values.update(overrides)
        return SimulationParameters(**values)
