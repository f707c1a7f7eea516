# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Monte Carlo simulation module for retirement portfolio survival.

This module provides the simulation engine: historical-bootstrap and
parametric return sampling, correlated inflation, the per-run withdrawal loop,
and aggregation of runs into a SimulationResult.
"""

from .config import EngineOptions, InflationStrategy, SimulationParameters, SuccessCriterion
from .market_assumptions import AssetClassAssumptions, MarketAssumptions
from .historical_data import HistoricalDataset, ReturnSummary, load_historical_dataset
from .return_generator import MarketDraw, ReturnSampler
from .inflation import InflationModel, cumulative_index
from .results import SimulationResult, SimulationRun, YearlyProjection
from .simulator import MonteCarloEngine

__all__ = [
    'EngineOptions',
    'InflationStrategy',
    'SimulationParameters',
    'SuccessCriterion',
    'AssetClassAssumptions',
    'MarketAssumptions',
    'HistoricalDataset',
    'ReturnSummary',
    'load_historical_dataset',
    'MarketDraw',
    'ReturnSampler',
    'InflationModel',
    'cumulative_index',
    'SimulationResult',
    'SimulationRun',
    'YearlyProjection',
    'MonteCarloEngine',
]
