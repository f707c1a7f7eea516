# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Tests for cohort, comparison, ruin, and FIRE projection analytics.
"""

import unittest
import numpy as np

from ..assumptions import RetirementAssumptions
from ..errors import ConfigurationError
from ..analytics.sequence_risk import analyze_sequence_risk, early_return_score
from ..analytics.strategy_comparison import compare_strategies, comparison_configurations
from ..analytics.income_comparison import compare_income_scenarios, social_security_claiming_scenarios
from ..analytics.ruin import ruin_year_distribution
from ..analytics.sensitivity import fire_number, project_fire, sensitivity_sweep
from ..montecarlo.config import SimulationParameters
from ..montecarlo.historical_data import HistoricalDataset
from ..montecarlo.results import SimulationResult
from ..montecarlo.simulator import MonteCarloEngine
from ..withdrawal.strategy import WithdrawalConfiguration, WithdrawalStrategy
from .test_portfolio import sixty_forty
from .test_results import make_run


class TestSequenceRisk(unittest.TestCase):
    """Tests for sequence-of-returns cohorts."""

    def test_early_return_score(self):
        """Test the median early change skips zero starting balances."""
        self.assertAlmostEqual(early_return_score([100, 110, 99, 0, 0], 4), -0.1)
        self.assertEqual(early_return_score([0, 0, 0], 2), 0.0)

    def test_cohort_split(self):
        """Test thirds are sized n // 3 with the remainder in the good cohort."""
        params = SimulationParameters(number_of_runs=4, time_horizon_years=2)
        runs = [
            make_run(0, [100, 50, 25], [5, 5], True),
            make_run(1, [100, 150, 200], [5, 5], True),
            make_run(2, [100, 100, 100], [5, 5], True),
            make_run(3, [100, 0, 0], [100, 0], False, ruin_year=1),
        ]
        analysis = analyze_sequence_risk(SimulationResult.from_runs(params, runs), early_years=5)
        self.assertEqual(analysis.early_years, 2)
        self.assertEqual(analysis.poor.run_numbers, (3,))
        self.assertEqual(analysis.average.run_numbers, (0,))
        self.assertEqual(analysis.good.run_numbers, (2, 1))
        self.assertEqual(analysis.poor.success_rate, 0.0)
        self.assertEqual(analysis.good.median_final_balance, 150)
        self.assertEqual(analysis.success_spread, 1.0)

    def test_small_result_has_empty_cohorts(self):
        """Test fewer than three runs leaves the first cohorts empty."""
        params = SimulationParameters(number_of_runs=2, time_horizon_years=1)
        runs = [make_run(0, [100, 90], [5], True), make_run(1, [100, 120], [5], True)]
        analysis = analyze_sequence_risk(SimulationResult.from_runs(params, runs))
        self.assertEqual(analysis.poor.size, 0)
        self.assertEqual(analysis.average.size, 0)
        self.assertEqual(analysis.poor.success_rate, 0.0)
        self.assertEqual(analysis.good.size, 2)
        self.assertEqual(list(analysis.to_dataframe().columns), ["good"])

    def test_requires_runs(self):
        """Test a stripped result cannot be analyzed."""
        params = SimulationParameters(number_of_runs=1, time_horizon_years=1)
        result = SimulationResult.from_runs(params, [make_run(0, [100, 90], [5], True)], keep_runs=False)
        with self.assertRaises(ValueError):
            analyze_sequence_risk(result)

    def test_early_returns_drive_success(self):
        """Test poor early returns lead to lower success than good ones."""
        data = HistoricalDataset.synthetic(seed=2)
        params = SimulationParameters(
            number_of_runs=1500, rng_seed=17,
            withdrawal_config=WithdrawalConfiguration(withdrawal_rate=0.05),
        )
        result = MonteCarloEngine().run_simulation(sixty_forty(), params, data)
        analysis = analyze_sequence_risk(result)
        self.assertEqual(analysis.poor.size, 500)
        self.assertEqual(analysis.good.size, 500)
        self.assertLessEqual(analysis.poor.success_rate, analysis.average.success_rate)
        self.assertLessEqual(analysis.average.success_rate, analysis.good.success_rate)
        self.assertLess(analysis.poor.median_early_return, analysis.good.median_early_return)
        all_runs = set(analysis.poor.run_numbers + analysis.average.run_numbers + analysis.good.run_numbers)
        self.assertEqual(all_runs, set(range(1500)))


class TestStrategyComparison(unittest.TestCase):
    """Tests for strategy comparison."""

    def test_configurations(self):
        """Test every strategy shares the rate and implied dollar amount."""
        configs = comparison_configurations(WithdrawalConfiguration(withdrawal_rate=0.04), 1_000_000)
        self.assertEqual(list(configs), list(WithdrawalStrategy))
        self.assertEqual(configs[WithdrawalStrategy.FIXED_DOLLAR].annual_amount, 40_000)
        guardrails = configs[WithdrawalStrategy.GUARDRAILS]
        self.assertAlmostEqual(guardrails.upper_guardrail, 0.05)
        self.assertAlmostEqual(guardrails.lower_guardrail, 0.032)
        for config in configs.values():
            self.assertEqual(config.withdrawal_rate, 0.04)

    def test_high_rate_caps_upper_guardrail(self):
        """Test a rate above 80% still yields a valid guardrail configuration."""
        configs = comparison_configurations(WithdrawalConfiguration(withdrawal_rate=0.9), 100_000)
        guardrails = configs[WithdrawalStrategy.GUARDRAILS]
        self.assertEqual(guardrails.upper_guardrail, 1.0)
        self.assertAlmostEqual(guardrails.lower_guardrail, 0.72)

    def test_compare_strategies(self):
        """Test all strategies run on the same markets."""
        data = HistoricalDataset.synthetic(seed=4)
        params = SimulationParameters(rng_seed=8)
        comparison = compare_strategies(sixty_forty(), params, data, number_of_runs=200)
        self.assertEqual(comparison.number_of_runs, 200)
        self.assertEqual([o.strategy for o in comparison.outcomes], list(WithdrawalStrategy))
        fixed_pct = comparison.outcome_for(WithdrawalStrategy.FIXED_PERCENTAGE)
        fixed_dollar = comparison.outcome_for(WithdrawalStrategy.FIXED_DOLLAR)
        # Same real amount on the same seed gives identical outcomes
        self.assertEqual(fixed_pct.success_rate, fixed_dollar.success_rate)
        self.assertEqual(fixed_pct.median_final_balance, fixed_dollar.median_final_balance)
        self.assertEqual(len(fixed_pct.yearly_medians), 31)

        best = comparison.best_by("probability_of_ruin")
        self.assertEqual(best.probability_of_ruin, min(o.probability_of_ruin for o in comparison.outcomes))
        ranked = comparison.ranked("median_final_balance")
        self.assertGreaterEqual(ranked[0].median_final_balance, ranked[-1].median_final_balance)
        with self.assertRaises(ValueError):
            comparison.ranked("vibes")
        self.assertEqual(list(comparison.to_dataframe().index),
                         ["Fixed Percentage", "Dynamic Percentage", "Guardrails", "Fixed Dollar"])


class TestIncomeComparison(unittest.TestCase):
    """Tests for income timing comparison."""

    def test_claiming_scenarios(self):
        """Test one scenario per claim age with other income carried along."""
        from ..income.schedule import ScheduledIncome
        pension = ScheduledIncome("Pension", 12000, 65, inflation_adjusted=False)
        scenarios = social_security_claiming_scenarios(60000, 1970, other_income=[pension])
        self.assertEqual(list(scenarios), ["Claim at 62", "Claim at 67", "Claim at 70"])
        self.assertEqual(scenarios["Claim at 70"][0].start_age, 70)
        self.assertEqual(scenarios["Claim at 62"][1], pension)
        self.assertLess(scenarios["Claim at 62"][0].annual_amount, scenarios["Claim at 70"][0].annual_amount)

    def test_compare_income_scenarios(self):
        """Test each scenario runs with its own schedule on the same seed."""
        data = HistoricalDataset.synthetic(seed=6)
        params = SimulationParameters(rng_seed=21, retirement_age=62)
        scenarios = social_security_claiming_scenarios(60000, 1970)
        comparison = compare_income_scenarios(sixty_forty(), params, scenarios, data, number_of_runs=200)
        self.assertEqual(comparison.number_of_runs, 200)
        self.assertEqual([o.first_income_year for o in comparison.outcomes], [1, 6, 9])
        for outcome in comparison.outcomes:
            self.assertGreaterEqual(outcome.success_rate, 0.0)
            self.assertLessEqual(outcome.success_rate, 1.0)
        df = comparison.to_dataframe()
        self.assertEqual(list(df.index), ["Claim at 62", "Claim at 67", "Claim at 70"])
        self.assertIn(comparison.best_by().name, df.index)


class TestRuinDistribution(unittest.TestCase):
    """Tests for ruin-year bucketing."""

    def setUp(self):
        def path(ruin_year):
            balances = np.full(11, 100.0)
            if ruin_year is not None:
                balances[ruin_year:] = 0.0
            return balances

        params = SimulationParameters(number_of_runs=4, time_horizon_years=10)
        runs = [
            make_run(0, path(3), [10] * 10, False, ruin_year=3),
            make_run(1, path(7), [10] * 10, False, ruin_year=7),
            make_run(2, path(7), [10] * 10, False, ruin_year=7),
            make_run(3, path(None), [10] * 10, True),
        ]
        self.result = SimulationResult.from_runs(params, runs)

    def test_buckets(self):
        """Test ruin years fall into fixed-width buckets."""
        dist = ruin_year_distribution(self.result, bucket_years=5)
        self.assertEqual(dist.failed_runs, 3)
        self.assertEqual(dist.total_runs, 4)
        self.assertAlmostEqual(dist.probability_of_ruin, 0.75)
        self.assertEqual([(b.start_year, b.end_year, b.count) for b in dist.buckets],
                         [(1, 5, 1), (6, 10, 2)])
        self.assertAlmostEqual(dist.buckets[1].fraction_of_failures, 2 / 3)
        self.assertEqual(dist.median_ruin_year, 7.0)
        self.assertEqual(dist.early_failures, 1)
        self.assertEqual(dist.late_failures, 2)
        self.assertEqual(list(dist.to_dataframe().index), ["Years 1-5", "Years 6-10"])

    def test_uneven_last_bucket(self):
        """Test the last bucket is clipped to the horizon."""
        dist = ruin_year_distribution(self.result, bucket_years=4)
        self.assertEqual(dist.buckets[-1].end_year, 10)
        self.assertEqual(sum(b.count for b in dist.buckets), 3)

    def test_invalid_bucket_width(self):
        """Test bucket width must be positive."""
        with self.assertRaises(ValueError):
            ruin_year_distribution(self.result, bucket_years=0)

    def test_no_failures(self):
        """Test a result without failures."""
        result = SimulationResult.from_runs(self.result.parameters, self.result.require_runs()[3:])
        dist = ruin_year_distribution(result)
        self.assertEqual(dist.failed_runs, 0)
        self.assertIsNone(dist.median_ruin_year)
        self.assertTrue(all(b.fraction_of_failures == 0.0 for b in dist.buckets))


class TestSensitivity(unittest.TestCase):
    """Tests for deterministic FIRE projection."""

    def setUp(self):
        self.assumptions = RetirementAssumptions(30, 65, annual_savings=50_000,
                                                 expected_annual_spend=40_000, expected_return=0.0)

    def test_fire_number(self):
        """Test spend / rate."""
        self.assertEqual(fire_number(40_000, 0.04), 1_000_000)
        with self.assertRaises(ConfigurationError):
            fire_number(40_000, 0.0)

    def test_project_fire(self):
        """Test years until the FIRE number is reached."""
        projection = project_fire(self.assumptions, 800_000)
        self.assertTrue(projection.reachable)
        self.assertEqual(projection.years_to_fire, 4)
        self.assertEqual(projection.fire_age, 34)
        self.assertEqual(projection.balances, (800_000, 850_000, 900_000, 950_000, 1_000_000))
        self.assertEqual(project_fire(self.assumptions, 2_000_000).years_to_fire, 0)

    def test_unreachable(self):
        """Test a target that is never reached."""
        stuck = self.assumptions.replace(annual_savings=0.0)
        projection = project_fire(stuck, 100_000, max_years=10)
        self.assertFalse(projection.reachable)
        self.assertIsNone(projection.fire_age)
        self.assertEqual(len(projection.balances), 11)

    def test_spend_sweep(self):
        """Test higher spending never reaches FIRE sooner."""
        points = sensitivity_sweep(self.assumptions, 500_000, variable="spend")
        self.assertEqual(len(points), 11)
        self.assertEqual([p.value for p in points if p.is_baseline], [40_000])
        self.assertEqual(points[0].value, 20_000)
        self.assertEqual(points[-1].value, 60_000)
        years = [p.years_to_fire for p in points]
        self.assertEqual(years, sorted(years))

    def test_savings_sweep_skips_negative(self):
        """Test negative savings values are skipped."""
        points = sensitivity_sweep(self.assumptions.replace(annual_savings=0.0), 500_000, variable="savings")
        self.assertEqual([p.value for p in points], [0, 2000, 4000, 6000, 8000, 10000])
        self.assertTrue(points[0].is_baseline)

    def test_invalid_variable(self):
        """Test only spend and savings can be swept."""
        with self.assertRaises(ConfigurationError):
            sensitivity_sweep(self.assumptions, 500_000, variable="age")


if __name__ == '__main__':
    unittest.main()
