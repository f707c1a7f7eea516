# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Annual inflation model.

The historically-correlated strategy reads inflation from the same historical
year index the return sampler used for stocks that year, so a crash year comes
with that year's inflation. Without an inflation series, or without a
reference index, it falls back to the fixed rate.
"""

from typing import Optional, Sequence

import numpy as np

from .config import InflationStrategy
from .return_generator import MarketDraw


class InflationModel:
    """Produces one inflation rate per simulation year.

    Example:
        >>> model = InflationModel(InflationStrategy.FIXED_RATE, 0.03)
        >>> model.sample(1, MarketDraw(0.05))
        0.03
    """

    def __init__(self, strategy: InflationStrategy, fixed_rate: float,
                 history: Optional[Sequence[float]] = None):
        """Initialize the model.

        Args:
            strategy: Inflation strategy
            fixed_rate: Constant rate, also the fallback
            history: Historical annual inflation aligned with the return
                     series by year index
        """
        self.strategy = InflationStrategy(strategy)
        self.fixed_rate = fixed_rate
        self.history = None if history is None else np.asarray(history, dtype=float)

    @property
    def uses_history(self) -> bool:
        return (self.strategy == InflationStrategy.HISTORICAL_CORRELATED
                and self.history is not None and len(self.history) > 0)

    def sample(self, year: int, draw: MarketDraw) -> float:
        """Inflation for a simulation year given that year's market draw."""
        if self.uses_history and draw.reference_index is not None:
            return float(self.history[draw.reference_index % len(self.history)])
        return self.fixed_rate

    def sample_path(self, num_years: int,
                    reference_indices: Optional[np.ndarray] = None) -> np.ndarray:
        """Inflation for every year of a path sampled by ReturnSampler.sample_path."""
        if self.uses_history and reference_indices is not None:
            return self.history[np.asarray(reference_indices) % len(self.history)]
        return np.full(num_years, self.fixed_rate)


def cumulative_index(rates: Sequence[float]) -> np.ndarray:
    """Price level at the start of each year relative to year 1.

    index[0] = 1 and index[t] = prod(1 + rates[k]) for k < t.
    """
    rates = np.asarray(rates, dtype=float)
    index = np.ones(len(rates))
    if len(rates) > 1:
        index[1:] = np.cumprod(1.0 + rates[:-1])
    return index
