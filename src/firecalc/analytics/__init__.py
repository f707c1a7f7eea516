# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Post-hoc analytics built on simulation output.

Cohort and ruin analyses read a result's per-run trajectories; the comparison
helpers re-run the engine with varied withdrawal or income configurations.
"""

from .sequence_risk import ReturnCohort, SequenceRiskAnalysis, analyze_sequence_risk
from .strategy_comparison import StrategyComparison, StrategyOutcome, compare_strategies
from .income_comparison import (
    IncomeComparison,
    IncomeScenarioOutcome,
    compare_income_scenarios,
    social_security_claiming_scenarios,
)
from .ruin import RuinBucket, RuinDistribution, ruin_year_distribution
from .sensitivity import FireProjection, SensitivityPoint, fire_number, project_fire, sensitivity_sweep

__all__ = [
    'ReturnCohort',
    'SequenceRiskAnalysis',
    'analyze_sequence_risk',
    'StrategyComparison',
    'StrategyOutcome',
    'compare_strategies',
    'IncomeComparison',
    'IncomeScenarioOutcome',
    'compare_income_scenarios',
    'social_security_claiming_scenarios',
    'RuinBucket',
    'RuinDistribution',
    'ruin_year_distribution',
    'FireProjection',
    'SensitivityPoint',
    'fire_number',
    'project_fire',
    'sensitivity_sweep',
]
