# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Withdrawal calculator.

All amounts are real (year-1) dollars. A nominal amount that is not adjusted
for inflation is divided by the cumulative inflation index for the year, which
is 1.0 in year 1.

The only state carried between years is the (balance, carried withdrawal)
pair, threaded explicitly through simulate_path. Each strategy rule is a pure
function of its inputs.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Union

import numpy as np

from ..errors import ConfigurationError
from .strategy import (
    DynamicPercentage,
    FixedDollar,
    FixedPercentage,
    Guardrails,
    StrategyVariant,
    WithdrawalConfiguration,
)


@dataclass(frozen=True)
class WithdrawalState:
    """State threaded from one year to the next."""
    balance: float
    carried_withdrawal: float


@dataclass(frozen=True)
class WithdrawalStep:
    """One year's withdrawal decision.

    Attributes:
        gross: Amount the strategy wants to spend
        income_offset: Guaranteed income applied against it
        net: Spending the portfolio has to fund, max(0, gross - income)
        draw: Amount taken from the portfolio, net grossed up for tax
        carried: Withdrawal carried into next year's decision
    """
    gross: float
    income_offset: float
    net: float
    draw: float
    carried: float


def _fixed_percentage(variant: FixedPercentage, balance: float, year: int, carried: float,
                      initial_balance: float, inflation_index: float) -> float:
    amount = initial_balance * variant.rate
    if variant.adjust_for_inflation:
        return amount
    return amount / inflation_index


def _dynamic_percentage(variant: DynamicPercentage, balance: float, year: int, carried: float,
                        initial_balance: float, inflation_index: float) -> float:
    amount = max(balance, 0.0) * variant.rate
    if variant.floor is not None:
        amount = max(amount, initial_balance * variant.floor)
    if variant.ceiling is not None:
        amount = min(amount, initial_balance * variant.ceiling)
    return amount


def _guardrails(variant: Guardrails, balance: float, year: int, carried: float,
                initial_balance: float, inflation_index: float) -> float:
    if year <= 1 or carried <= 0:
        return initial_balance * variant.rate
    if balance <= 0:
        return carried
    current_rate = carried / balance
    if current_rate > variant.upper:
        return carried * (1.0 - variant.adjustment)
    if current_rate < variant.lower:
        return carried * (1.0 + variant.adjustment)
    return carried


def _fixed_dollar(variant: FixedDollar, balance: float, year: int, carried: float,
                  initial_balance: float, inflation_index: float) -> float:
    if variant.adjust_for_inflation:
        return variant.annual_amount
    return variant.annual_amount / inflation_index


_RULES: Dict[type, Callable[..., float]] = {
    FixedPercentage: _fixed_percentage,
    DynamicPercentage: _dynamic_percentage,
    Guardrails: _guardrails,
    FixedDollar: _fixed_dollar,
}


def strategy_amount(variant: StrategyVariant,
                    current_balance: float,
                    year: int,
                    baseline_withdrawal: float,
                    initial_balance: float,
                    inflation_index: float = 1.0) -> float:
    """Amount a strategy variant spends this year, before any income offset."""
    rule = _RULES.get(type(variant))
    if rule is None:
        raise ConfigurationError(f"Unsupported withdrawal strategy variant: {variant!r}")
    return rule(variant, current_balance, year, baseline_withdrawal, initial_balance, inflation_index)


def income_offset(config: WithdrawalConfiguration,
                  scheduled_income: Optional[float],
                  inflation_index: float = 1.0) -> float:
    """Guaranteed income applied against this year's withdrawal.

    A scheduled income total (even zero) takes precedence. Without a
    schedule (None), the legacy fixed_income_real / fixed_income_nominal
    fields apply instead; the two mechanisms are never added together.
    """
    if scheduled_income is not None:
        return max(scheduled_income, 0.0)
    offset = config.fixed_income_real or 0.0
    if config.fixed_income_nominal:
        offset += config.fixed_income_nominal / inflation_index
    return offset


def plan_withdrawal(current_balance: float,
                    year: int,
                    baseline_withdrawal: float,
                    initial_balance: float,
                    config: WithdrawalConfiguration,
                    scheduled_income: Optional[float] = None,
                    inflation_index: float = 1.0,
                    tax_rate: Optional[float] = None) -> WithdrawalStep:
    """Decide one year's withdrawal.

    Args:
        current_balance: Balance after this year's return
        year: Simulation year, starting at 1
        baseline_withdrawal: Strategy amount carried from the prior year
        initial_balance: Balance at the start of the simulation
        config: Withdrawal configuration
        scheduled_income: Total scheduled income this year, or None when no
                          income schedule is configured
        inflation_index: Cumulative inflation since year 1
        tax_rate: Flat tax applied to portfolio draws

    Returns:
        WithdrawalStep with the gross, net, and taxed amounts
    """
    gross = strategy_amount(config.variant(), current_balance, year,
                            baseline_withdrawal, initial_balance, inflation_index)
    offset = income_offset(config, scheduled_income, inflation_index)
    net = max(0.0, gross - offset)
    draw = net
    if tax_rate:
        draw = net / (1.0 - tax_rate)
    return WithdrawalStep(gross=gross, income_offset=offset, net=net, draw=draw, carried=gross)


def calculate_withdrawal(current_balance: float,
                         year: int,
                         baseline_withdrawal: float,
                         initial_balance: float,
                         config: WithdrawalConfiguration,
                         scheduled_income: Optional[float] = None,
                         inflation_index: float = 1.0) -> float:
    """Portfolio withdrawal for the year, net of guaranteed income.

    Example:
        >>> config = WithdrawalConfiguration(withdrawal_rate=0.04)
        >>> calculate_withdrawal(1_100_000, 2, 40_000, 1_000_000, config, 10_000)
        30000.0
    """
    return plan_withdrawal(current_balance, year, baseline_withdrawal, initial_balance,
                           config, scheduled_income, inflation_index).net


@dataclass(frozen=True)
class PathOutcome:
    """Result of folding the withdrawal rule over one return path.

    Attributes:
        balances: Balance at each year end, index 0 is the initial balance
        withdrawals: Amount actually drawn from the portfolio each year
        strategy_amounts: Amount the strategy wanted to spend each year
        income: Income offset applied each year
        ruin_year: First year the balance reached zero, or None
        years_lasted: Number of leading years whose draw was met in full
    """
    balances: np.ndarray
    withdrawals: np.ndarray
    strategy_amounts: np.ndarray
    income: np.ndarray
    ruin_year: Optional[int]
    years_lasted: int

    @property
    def ruined(self) -> bool:
        return self.ruin_year is not None

    @property
    def met_all_withdrawals(self) -> bool:
        return self.years_lasted == len(self.withdrawals)


def simulate_path(initial_balance: float,
                  returns: Sequence[float],
                  config: WithdrawalConfiguration,
                  scheduled_income: Optional[Sequence[float]] = None,
                  inflation_index: Optional[Sequence[float]] = None,
                  tax_rate: Optional[float] = None) -> PathOutcome:
    """Run one path: apply the return, then withdraw, then clamp at zero.

    Args:
        initial_balance: Starting balance
        returns: Real portfolio return for each year
        config: Withdrawal configuration
        scheduled_income: Scheduled income total per year, or None when no
                          income schedule is configured
        inflation_index: Cumulative inflation index per year (all 1.0 if None)
        tax_rate: Flat tax on portfolio draws

    Returns:
        PathOutcome with balances of length len(returns) + 1
    """
    num_years = len(returns)
    balances = np.zeros(num_years + 1)
    withdrawals = np.zeros(num_years)
    amounts = np.zeros(num_years)
    income = np.zeros(num_years)
    balances[0] = initial_balance
    ruin_year = None
    years_lasted = num_years
    shortfall = False

    state = WithdrawalState(balance=initial_balance, carried_withdrawal=0.0)
    for year in range(1, num_years + 1):
        i = year - 1
        balance = max(0.0, state.balance * (1.0 + returns[i]))
        step = plan_withdrawal(
            balance, year, state.carried_withdrawal, initial_balance, config,
            None if scheduled_income is None else scheduled_income[i],
            1.0 if inflation_index is None else inflation_index[i],
            tax_rate,
        )
        amounts[i] = step.gross
        income[i] = step.income_offset
        if step.draw > balance and not shortfall:
            shortfall = True
            years_lasted = i
        withdrawals[i] = min(step.draw, balance)
        balance = max(0.0, balance - step.draw)
        balances[year] = balance
        if balance <= 0 and ruin_year is None:
            ruin_year = year
        state = WithdrawalState(balance=balance, carried_withdrawal=step.carried)

    return PathOutcome(balances, withdrawals, amounts, income, ruin_year, years_lasted)


@dataclass(frozen=True)
class WithdrawalProjection:
    """One year of a deterministic withdrawal projection."""
    year: int
    balance: float
    strategy_amount: float
    income: float
    withdrawal: float
    withdrawal_rate: float


def project_withdrawals(initial_balance: float,
                        returns: Union[float, Sequence[float]],
                        config: WithdrawalConfiguration,
                        years: Optional[int] = None,
                        inflation_rate: float = 0.0,
                        scheduled_income: Optional[Sequence[float]] = None,
                        tax_rate: Optional[float] = None) -> List[WithdrawalProjection]:
    """Project withdrawals along a known return path.

    Args:
        initial_balance: Starting balance
        returns: Real return per year, or one constant assumed return
        config: Withdrawal configuration
        years: Horizon, required when returns is a constant
        inflation_rate: Constant inflation used for nominal amounts
        scheduled_income: Scheduled income total per year
        tax_rate: Flat tax on portfolio draws

    Returns:
        One WithdrawalProjection per year. withdrawal_rate is the draw divided
        by the balance it was taken from.

    Example:
        >>> rows = project_withdrawals(1_000_000, 0.05, WithdrawalConfiguration(), years=3)
        >>> [round(r.withdrawal) for r in rows]
        [40000, 40000, 40000]
    """
    if np.isscalar(returns):
        if years is None:
            raise ConfigurationError("years is required with a constant assumed return")
        path = np.full(years, float(returns))
    else:
        path = np.asarray(returns, dtype=float)
        if years is not None:
            path = path[:years]
    index = (1.0 + inflation_rate) ** np.arange(len(path))
    outcome = simulate_path(initial_balance, path, config, scheduled_income, index, tax_rate)

    rows = []
    for i in range(len(path)):
        available = outcome.balances[i + 1] + outcome.withdrawals[i]
        rate = outcome.withdrawals[i] / available if available > 0 else 0.0
        rows.append(WithdrawalProjection(
            year=i + 1,
            balance=float(outcome.balances[i + 1]),
            strategy_amount=float(outcome.strategy_amounts[i]),
            income=float(outcome.income[i]),
            withdrawal=float(outcome.withdrawals[i]),
            withdrawal_rate=float(rate),
        ))
    return rows
