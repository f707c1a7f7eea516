# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Tests for withdrawal strategies and the per-path withdrawal fold.
"""

import unittest
import numpy as np

from ..errors import ConfigurationError
from ..withdrawal.strategy import (
    DynamicPercentage,
    FixedDollar,
    FixedPercentage,
    Guardrails,
    WithdrawalConfiguration,
    WithdrawalStrategy,
    default_guardrails,
)
from ..withdrawal.calculator import (
    calculate_withdrawal,
    income_offset,
    plan_withdrawal,
    project_withdrawals,
    simulate_path,
    strategy_amount,
)


class TestWithdrawalConfiguration(unittest.TestCase):
    """Tests for WithdrawalConfiguration."""

    def test_defaults(self):
        """Test the default 4% fixed-percentage rule."""
        config = WithdrawalConfiguration()
        self.assertEqual(config.strategy, WithdrawalStrategy.FIXED_PERCENTAGE)
        self.assertEqual(config.variant(), FixedPercentage(0.04, True))
        self.assertFalse(config.has_legacy_income)

    def test_strategy_from_string(self):
        """Test strategies can be given by value."""
        config = WithdrawalConfiguration(strategy="dynamic_percentage", floor_percentage=0.03)
        self.assertEqual(config.strategy, WithdrawalStrategy.DYNAMIC_PERCENTAGE)
        self.assertEqual(config.variant(), DynamicPercentage(0.04, 0.03, None))
        self.assertEqual(config.strategy.label, "Dynamic Percentage")

    def test_guardrail_defaults(self):
        """Test guardrail bands default to 125% and 80% of the rate."""
        variant = WithdrawalConfiguration(strategy=WithdrawalStrategy.GUARDRAILS).variant()
        self.assertIsInstance(variant, Guardrails)
        self.assertAlmostEqual(variant.upper, 0.05)
        self.assertAlmostEqual(variant.lower, 0.032)
        self.assertAlmostEqual(variant.adjustment, 0.10)

    def test_guardrail_upper_default_capped(self):
        """Test the derived upper band never exceeds 100%."""
        variant = WithdrawalConfiguration(strategy=WithdrawalStrategy.GUARDRAILS, withdrawal_rate=0.9).variant()
        self.assertEqual(variant.upper, 1.0)
        self.assertAlmostEqual(variant.lower, 0.72)
        self.assertEqual(default_guardrails(0.04)[0], 0.04 * 1.25)

    def test_fixed_dollar_requires_amount(self):
        """Test FIXED_DOLLAR without annual_amount is rejected."""
        with self.assertRaises(ConfigurationError):
            WithdrawalConfiguration(strategy=WithdrawalStrategy.FIXED_DOLLAR)
        config = WithdrawalConfiguration(strategy=WithdrawalStrategy.FIXED_DOLLAR, annual_amount=50000)
        self.assertEqual(config.variant(), FixedDollar(50000, True))

    def test_invalid_values(self):
        """Test out-of-range fields are rejected."""
        with self.assertRaises(ConfigurationError):
            WithdrawalConfiguration(withdrawal_rate=1.5)
        with self.assertRaises(ConfigurationError):
            WithdrawalConfiguration(strategy="yolo")
        with self.assertRaises(ConfigurationError):
            WithdrawalConfiguration(floor_percentage=0.06, ceiling_percentage=0.03)
        with self.assertRaises(ConfigurationError):
            WithdrawalConfiguration(strategy=WithdrawalStrategy.GUARDRAILS,
                                    upper_guardrail=0.03, lower_guardrail=0.04)
        with self.assertRaises(ConfigurationError):
            WithdrawalConfiguration(fixed_income_real=-1)

    def test_replace_revalidates(self):
        """Test replace() produces a validated copy."""
        config = WithdrawalConfiguration()
        self.assertEqual(config.replace(withdrawal_rate=0.05).withdrawal_rate, 0.05)
        with self.assertRaises(ConfigurationError):
            config.replace(withdrawal_rate=-0.01)


class TestStrategyAmounts(unittest.TestCase):
    """Tests for the per-strategy rules."""

    def test_fixed_percentage_uses_initial_balance(self):
        """Test fixed percentage ignores the current balance."""
        variant = FixedPercentage(0.04)
        self.assertEqual(strategy_amount(variant, 500_000, 5, 40_000, 1_000_000), 40_000)
        self.assertEqual(strategy_amount(variant, 2_000_000, 5, 40_000, 1_000_000), 40_000)

    def test_fixed_percentage_nominal(self):
        """Test non-adjusted withdrawals lose real value."""
        variant = FixedPercentage(0.04, adjust_for_inflation=False)
        self.assertAlmostEqual(strategy_amount(variant, 1e6, 3, 0, 1e6, inflation_index=1.21),
                               40_000 / 1.21)

    def test_dynamic_percentage_clamps(self):
        """Test floor and ceiling as fractions of the initial balance."""
        variant = DynamicPercentage(0.04, floor=0.03, ceiling=0.06)
        self.assertAlmostEqual(strategy_amount(variant, 1_250_000, 2, 0, 1_000_000), 50_000)
        self.assertAlmostEqual(strategy_amount(variant, 2_000_000, 2, 0, 1_000_000), 60_000)
        self.assertAlmostEqual(strategy_amount(variant, 500_000, 2, 0, 1_000_000), 30_000)
        self.assertAlmostEqual(strategy_amount(DynamicPercentage(0.04), 0.0, 2, 0, 1e6), 0.0)

    def test_guardrails_first_year(self):
        """Test year 1 always takes initial balance times rate."""
        variant = Guardrails(0.04, upper=0.05, lower=0.032)
        self.assertEqual(strategy_amount(variant, 300_000, 1, 0, 1_000_000), 40_000)

    def test_guardrails_adjustments(self):
        """Test cuts above the upper rail and raises below the lower rail."""
        variant = Guardrails(0.04, upper=0.05, lower=0.032, adjustment=0.10)
        self.assertAlmostEqual(strategy_amount(variant, 700_000, 2, 40_000, 1e6), 36_000)
        self.assertAlmostEqual(strategy_amount(variant, 1_500_000, 2, 40_000, 1e6), 44_000)
        self.assertAlmostEqual(strategy_amount(variant, 1_000_000, 2, 40_000, 1e6), 40_000)
        self.assertAlmostEqual(strategy_amount(variant, 0.0, 2, 40_000, 1e6), 40_000)

    def test_fixed_dollar(self):
        """Test fixed dollar amounts."""
        self.assertEqual(strategy_amount(FixedDollar(50_000), 1e6, 4, 0, 1e6, 1.5), 50_000)
        self.assertAlmostEqual(strategy_amount(FixedDollar(50_000, False), 1e6, 4, 0, 1e6, 1.25),
                               40_000)

    def test_unknown_variant(self):
        """Test an unknown variant type is rejected."""
        with self.assertRaises(ConfigurationError):
            strategy_amount(object(), 1e6, 1, 0, 1e6)


class TestIncomeAndTax(unittest.TestCase):
    """Tests for income offsets and tax gross-up."""

    def test_schedule_takes_precedence(self):
        """Test a scheduled total, even zero, replaces the legacy fields."""
        config = WithdrawalConfiguration(fixed_income_real=10_000, fixed_income_nominal=11_000)
        self.assertEqual(income_offset(config, 0.0), 0.0)
        self.assertEqual(income_offset(config, 5_000.0), 5_000.0)
        self.assertAlmostEqual(income_offset(config, None, inflation_index=1.1), 20_000)

    def test_income_reduces_withdrawal(self):
        """Test net withdrawal never goes negative."""
        config = WithdrawalConfiguration()
        self.assertEqual(calculate_withdrawal(1e6, 2, 40_000, 1e6, config, 10_000), 30_000)
        self.assertEqual(calculate_withdrawal(1e6, 2, 40_000, 1e6, config, 50_000), 0.0)

    def test_tax_gross_up(self):
        """Test draw = net / (1 - tax)."""
        step = plan_withdrawal(1e6, 1, 0, 1e6, WithdrawalConfiguration(), tax_rate=0.20)
        self.assertAlmostEqual(step.net, 40_000)
        self.assertAlmostEqual(step.draw, 50_000)
        self.assertAlmostEqual(step.carried, 40_000)


class TestSimulatePath(unittest.TestCase):
    """Tests for the return-then-withdraw fold."""

    def test_return_applied_before_withdrawal(self):
        """Test the year's return is applied before the draw."""
        outcome = simulate_path(1_000_000, [0.10], WithdrawalConfiguration())
        self.assertAlmostEqual(outcome.balances[1], 1_100_000 - 40_000)

    def test_depletion(self):
        """Test ruin year, years lasted, and the absorbing zero."""
        config = WithdrawalConfiguration(strategy=WithdrawalStrategy.FIXED_DOLLAR, annual_amount=100_000)
        outcome = simulate_path(250_000, [0.0, 0.0, 0.0, 1.0, 0.0], config)
        np.testing.assert_allclose(outcome.balances, [250_000, 150_000, 50_000, 0, 0, 0])
        np.testing.assert_allclose(outcome.withdrawals, [100_000, 100_000, 50_000, 0, 0])
        self.assertEqual(outcome.ruin_year, 3)
        self.assertEqual(outcome.years_lasted, 2)
        self.assertTrue(outcome.ruined)
        self.assertFalse(outcome.met_all_withdrawals)

    def test_exact_exhaustion(self):
        """Test a final draw that exactly empties the portfolio is met in full."""
        config = WithdrawalConfiguration(strategy=WithdrawalStrategy.FIXED_DOLLAR, annual_amount=100_000)
        outcome = simulate_path(200_000, [0.0, 0.0], config)
        self.assertEqual(outcome.ruin_year, 2)
        self.assertEqual(outcome.years_lasted, 2)
        self.assertTrue(outcome.met_all_withdrawals)

    def test_guardrails_cut_in_crash(self):
        """Test spending is cut whenever the current rate exceeds the upper rail."""
        config = WithdrawalConfiguration(strategy=WithdrawalStrategy.GUARDRAILS, withdrawal_rate=0.04)
        variant = config.variant()
        returns = [-0.30, -0.20, -0.10, -0.10, 0.0, 0.05, 0.05]
        balance, carried = 1_000_000.0, 0.0
        for year, r in enumerate(returns, start=1):
            balance = balance * (1 + r)
            step = plan_withdrawal(balance, year, carried, 1_000_000, config)
            if year >= 2 and carried / balance > variant.upper:
                self.assertLess(step.gross, carried)
            balance = max(0.0, balance - step.draw)
            carried = step.carried
        outcome = simulate_path(1_000_000, returns, config)
        self.assertLess(outcome.strategy_amounts[-1], 40_000)
        self.assertAlmostEqual(outcome.balances[-1], balance)

    def test_scheduled_income_path(self):
        """Test a per-year income path offsets withdrawals."""
        outcome = simulate_path(1_000_000, [0.0, 0.0, 0.0], WithdrawalConfiguration(),
                                scheduled_income=[0.0, 0.0, 30_000])
        np.testing.assert_allclose(outcome.withdrawals, [40_000, 40_000, 10_000])
        np.testing.assert_allclose(outcome.income, [0, 0, 30_000])


class TestProjectWithdrawals(unittest.TestCase):
    """Tests for project_withdrawals."""

    def test_constant_return(self):
        """Test a constant assumed return over a horizon."""
        rows = project_withdrawals(1_000_000, 0.05, WithdrawalConfiguration(), years=3)
        self.assertEqual([r.year for r in rows], [1, 2, 3])
        self.assertAlmostEqual(rows[0].withdrawal, 40_000)
        self.assertAlmostEqual(rows[0].balance, 1_010_000)
        self.assertAlmostEqual(rows[0].withdrawal_rate, 40_000 / 1_050_000)

    def test_constant_return_requires_years(self):
        """Test years is required with a scalar return."""
        with self.assertRaises(ConfigurationError):
            project_withdrawals(1_000_000, 0.05, WithdrawalConfiguration())

    def test_return_path_and_inflation(self):
        """Test an explicit path with nominal withdrawals."""
        config = WithdrawalConfiguration(adjust_for_inflation=False)
        rows = project_withdrawals(1_000_000, [0.0, 0.0, 0.0, 0.0], config,
                                   years=2, inflation_rate=0.25)
        self.assertEqual(len(rows), 2)
        self.assertAlmostEqual(rows[1].strategy_amount, 32_000)


if __name__ == '__main__':
    unittest.main()
