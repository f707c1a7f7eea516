# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Monte Carlo simulation orchestrator.

This module provides the MonteCarloEngine class which validates inputs, runs
independent paths (serially or across a worker pool), and aggregates them
into a SimulationResult.
"""

import logging
import time
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from ..errors import ConfigurationError, DataUnavailableError, SimulationCancelledError
from ..portfolio import AssetClass, Portfolio
from ..settings import PROGRESS_LOG_INTERVAL
from ..withdrawal.calculator import simulate_path
from .config import EngineOptions, InflationStrategy, SimulationParameters, SuccessCriterion
from .historical_data import HistoricalDataset
from .inflation import InflationModel, cumulative_index
from .market_assumptions import MarketAssumptions
from .results import SimulationResult, SimulationRun
from .return_generator import ReturnSampler

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class RunContext:
    """Read-only inputs shared by every run of one invocation."""
    parameters: SimulationParameters
    sampler: ReturnSampler
    inflation: InflationModel
    seed: int
    success_criterion: SuccessCriterion = SuccessCriterion.STRICT

    def rng_for(self, run_number: int) -> np.random.Generator:
        """Independent generator derived from the global seed and run number."""
        return np.random.default_rng(np.random.SeedSequence(self.seed, spawn_key=(run_number,)))

    def income_path(self, inflation_index: np.ndarray) -> Optional[np.ndarray]:
        schedule = self.parameters.income_schedule
        if schedule is None:
            return None
        age = self.parameters.retirement_age
        return np.array([
            schedule.total_income(year, age, inflation_index[year - 1])
            for year in range(1, self.parameters.time_horizon_years + 1)
        ])


def simulate_run(context: RunContext, run_number: int) -> SimulationRun:
    """Simulate one path: sample returns and inflation, then fold withdrawals."""
    params = context.parameters
    years = params.time_horizon_years
    rng = context.rng_for(run_number)

    returns, reference = context.sampler.sample_path(years, rng)
    inflation = context.inflation.sample_path(years, reference)
    index = cumulative_index(inflation)

    outcome = simulate_path(
        params.initial_portfolio_value,
        returns,
        params.withdrawal_config,
        scheduled_income=context.income_path(index),
        inflation_index=index,
        tax_rate=params.tax_rate,
    )

    if context.success_criterion == SuccessCriterion.LENIENT:
        success = outcome.met_all_withdrawals
    else:
        success = bool(outcome.balances[-1] > 0)

    return SimulationRun(
        run_number=run_number,
        yearly_balances=outcome.balances,
        yearly_withdrawals=outcome.withdrawals,
        success=success,
        ruin_year=outcome.ruin_year,
        years_lasted=outcome.years_lasted,
    )


def run_batch(context: RunContext, run_numbers: Sequence[int]) -> List[SimulationRun]:
    """Simulate a batch of runs. Module-level so process pools can pickle it."""
    return [simulate_run(context, run_number) for run_number in run_numbers]


class MonteCarloEngine:
    """Runs Monte Carlo retirement simulations.

    The workflow:
    1. Validate the portfolio, parameters, and historical data
    2. Build the return sampler and inflation model once, shared read-only
    3. Simulate each run with its own generator derived from (seed, run number)
    4. Sort runs by run number and aggregate into a SimulationResult

    Example:
        >>> engine = MonteCarloEngine(EngineOptions(executor="thread", max_workers=4))
        >>> result = engine.run_simulation(portfolio, SimulationParameters(rng_seed=42), data)
        >>> print(f"Success rate: {result.success_rate:.1%}")
    """

    def __init__(self, options: Optional[EngineOptions] = None):
        """Initialize the engine.

        Args:
            options: Execution options. If None, runs serially with defaults.
        """
        self.options = options or EngineOptions()

    def resolve_weights(self, portfolio: Portfolio,
                        parameters: SimulationParameters) -> Dict[AssetClass, float]:
        """Per-class weights: the custom override if present, else the portfolio's."""
        if parameters.custom_allocation_weights is not None:
            return dict(parameters.custom_allocation_weights)
        return portfolio.allocation_weights()

    def validate(self, portfolio: Portfolio, parameters: SimulationParameters,
                 historical_data: Optional[HistoricalDataset]) -> None:
        """Check inputs before any run starts.

        Raises:
            ConfigurationError: Empty portfolio or invalid parameters
            DataUnavailableError: Bootstrap requested without a dataset
        """
        if portfolio is None or portfolio.is_empty:
            raise ConfigurationError("Portfolio has no assets; add at least one asset to simulate")
        parameters.validate()
        if parameters.use_historical_bootstrap and historical_data is None:
            raise DataUnavailableError(
                "Historical bootstrap requested but no historical dataset was supplied"
            )

    def build_context(self, portfolio: Portfolio, parameters: SimulationParameters,
                      historical_data: Optional[HistoricalDataset]) -> RunContext:
        """Validate inputs and build the shared run context."""
        self.validate(portfolio, parameters, historical_data)

        correlated = parameters.inflation_strategy == InflationStrategy.HISTORICAL_CORRELATED
        history = None
        if correlated and historical_data is not None and historical_data.has_inflation:
            history = historical_data.inflation
        elif correlated:
            logger.warning("No historical inflation series; using fixed inflation rate %.2f%%",
                           parameters.inflation_rate * 100)

        # Parameter overrides take precedence over holding-level ones
        asset_returns, asset_volatility = portfolio.class_overrides()
        custom_returns = dict(asset_returns)
        custom_returns.update(parameters.custom_returns or {})
        custom_volatility = dict(asset_volatility)
        custom_volatility.update(parameters.custom_volatility or {})
        market = MarketAssumptions.from_dataset(historical_data, custom_returns, custom_volatility)
        sampler = ReturnSampler(
            self.resolve_weights(portfolio, parameters),
            historical_data,
            use_bootstrap=parameters.use_historical_bootstrap,
            block_length=parameters.bootstrap_block_length,
            market=market,
            parametric_classes=(parameters.overridden_classes
                                | frozenset(asset_returns) | frozenset(asset_volatility)),
            include_inflation=history is not None,
        )
        inflation = InflationModel(parameters.inflation_strategy, parameters.inflation_rate, history)

        seed = parameters.rng_seed
        if seed is None:
            seed = np.random.SeedSequence().entropy
        return RunContext(parameters, sampler, inflation, seed, self.options.success_criterion)

    def run_simulation(self,
                       portfolio: Portfolio,
                       parameters: SimulationParameters,
                       historical_data: Optional[HistoricalDataset] = None,
                       cancel_event=None,
                       progress: Optional[ProgressCallback] = None) -> SimulationResult:
        """Run the full simulation.

        Args:
            portfolio: Portfolio snapshot; must contain at least one asset
            parameters: Simulation parameters
            historical_data: Historical returns; required when bootstrap is on
            cancel_event: Object with is_set() (e.g. threading.Event), checked
                          between batches of runs
            progress: Called with (completed_runs, total_runs) after each batch

        Returns:
            SimulationResult aggregated over all runs

        Raises:
            ConfigurationError: Invalid inputs (nothing is run)
            DataUnavailableError: Missing historical data (nothing is run)
            SimulationCancelledError: cancel_event was set mid-invocation
        """
        context = self.build_context(portfolio, parameters, historical_data)
        total = parameters.number_of_runs
        logger.info("Starting %d runs over %d years (%s, executor=%s)", total,
                    parameters.time_horizon_years, context.sampler, self.options.executor)

        start = time.perf_counter()
        runs = self._execute(context, cancel_event, progress)
        elapsed_ms = (time.perf_counter() - start) * 1000

        result = SimulationResult.from_runs(parameters, runs, elapsed_ms, self.options.keep_runs)
        logger.info("Finished %d runs in %.0f ms: success rate %.1f%%", total, elapsed_ms,
                    result.success_rate * 100)
        return result

    def run_single(self, portfolio: Portfolio, parameters: SimulationParameters,
                   historical_data: Optional[HistoricalDataset] = None,
                   run_number: int = 0) -> SimulationRun:
        """Simulate one run, identical to run `run_number` of a full simulation.

        Useful for debugging or detailed analysis of a single path.
        """
        context = self.build_context(portfolio, parameters, historical_data)
        return simulate_run(context, run_number)

    def _batches(self, total: int) -> List[range]:
        size = self.options.batch_size
        return [range(i, min(i + size, total)) for i in range(0, total, size)]

    def _make_executor(self) -> Executor:
        if self.options.executor == "process":
            return ProcessPoolExecutor(max_workers=self.options.max_workers)
        return ThreadPoolExecutor(max_workers=self.options.max_workers)

    def _execute(self, context: RunContext, cancel_event,
                 progress: Optional[ProgressCallback]) -> List[SimulationRun]:
        total = context.parameters.number_of_runs
        batches = self._batches(total)
        runs: List[SimulationRun] = []

        if self.options.executor == "serial":
            for batch in batches:
                self._check_cancelled(cancel_event, len(runs), total)
                runs.extend(run_batch(context, batch))
                self._report(len(runs), len(batch), total, progress)
            return runs

        with self._make_executor() as executor:
            futures = [executor.submit(run_batch, context, batch) for batch in batches]
            try:
                for future in as_completed(futures):
                    self._check_cancelled(cancel_event, len(runs), total)
                    batch_runs = future.result()
                    runs.extend(batch_runs)
                    self._report(len(runs), len(batch_runs), total, progress)
            except SimulationCancelledError:
                for future in futures:
                    future.cancel()
                raise
        return runs

    @staticmethod
    def _check_cancelled(cancel_event, completed: int, total: int) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Simulation cancelled after %d of %d runs", completed, total)
            raise SimulationCancelledError(f"Simulation cancelled after {completed} of {total} runs")

    @staticmethod
    def _report(completed: int, batch_size: int, total: int,
                progress: Optional[ProgressCallback]) -> None:
        if completed // PROGRESS_LOG_INTERVAL > (completed - batch_size) // PROGRESS_LOG_INTERVAL:
            logger.debug("Completed %d/%d runs", completed, total)
        if progress is not None:
            progress(completed, total)
