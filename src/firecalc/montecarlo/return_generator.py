# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Portfolio-level annual real return sampler.

Each weighted asset class is sampled one of two ways:

- Historical bootstrap: resample the class's historical annual returns. With
  i.i.d. sampling every class draws its own random year each simulation year.
  With block bootstrap (block length > 1) one random start year is drawn per
  block and the same year index, advancing sequentially and wrapping around,
  is used for every class.
- Parametric: normal draws at the class's mean and volatility, correlated via
  Cholesky decomposition of the market-assumption correlation matrix.

A class is parametric when bootstrap is off, when it has a custom return or
volatility override, or when the dataset has no series for it.
"""

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

import numpy as np

from ..portfolio import AssetClass
from .historical_data import HistoricalDataset
from .market_assumptions import MarketAssumptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketDraw:
    """One year's sampled market outcome.

    Attributes:
        real_return: Weighted portfolio real return
        reference_index: Historical year index used for stocks (or shared by
                         the block), reused by correlated inflation. None
                         when no historical series is in play.
    """
    real_return: float
    reference_index: Optional[int] = None


class ReturnSampler:
    """Samples weighted portfolio real returns.

    Example:
        >>> data = HistoricalDataset.synthetic(seed=1)
        >>> sampler = ReturnSampler({AssetClass.STOCKS: 0.6, AssetClass.BONDS: 0.4}, data)
        >>> returns, indices = sampler.sample_path(30, np.random.default_rng(7))
        >>> returns.shape
        (30,)
    """

    def __init__(self,
                 weights: Mapping[AssetClass, float],
                 dataset: Optional[HistoricalDataset] = None,
                 use_bootstrap: bool = True,
                 block_length: Optional[int] = None,
                 market: Optional[MarketAssumptions] = None,
                 parametric_classes: frozenset = frozenset(),
                 include_inflation: bool = False):
        """Initialize the sampler.

        Args:
            weights: Per-class portfolio weights
            dataset: Historical returns; required for bootstrap sampling
            use_bootstrap: Resample history for classes the dataset covers
            block_length: Block bootstrap length; 1 or None means i.i.d.
            market: Parametric assumptions. Defaults to the dataset summary
                    statistics with built-in defaults for missing classes.
            parametric_classes: Classes always sampled parametrically
            include_inflation: Limit the historical index range to the
                               inflation series as well, so reference
                               indices are valid inflation indices
        """
        self.weights = {AssetClass.parse(k): float(v) for k, v in weights.items()}
        self.block_length = block_length if block_length and block_length > 1 else None
        active = [cls for cls in AssetClass if self.weights.get(cls, 0.0) > 0]

        self.bootstrap_classes: List[AssetClass] = []
        self.parametric_classes: List[AssetClass] = []
        for cls in active:
            if (use_bootstrap and dataset is not None and dataset.has(cls)
                    and cls not in parametric_classes):
                self.bootstrap_classes.append(cls)
            else:
                self.parametric_classes.append(cls)

        if use_bootstrap and dataset is not None:
            missing = [cls.value for cls in self.parametric_classes
                       if not dataset.has(cls) and cls not in parametric_classes]
            if missing:
                logger.warning("No historical returns for %s; using default assumptions", missing)

        lengths = [len(dataset.returns_for(cls)) for cls in self.bootstrap_classes]
        if include_inflation and dataset is not None and dataset.has_inflation:
            lengths.append(len(dataset.inflation))
        self.index_range = min(lengths) if lengths else 0

        if self.bootstrap_classes:
            self._history = np.vstack([
                dataset.returns_for(cls)[:self.index_range] for cls in self.bootstrap_classes
            ])
        else:
            self._history = np.zeros((0, self.index_range))
        self._bootstrap_weights = np.array([self.weights[cls] for cls in self.bootstrap_classes])
        self._stock_row = (self.bootstrap_classes.index(AssetClass.STOCKS)
                           if AssetClass.STOCKS in self.bootstrap_classes else None)

        if market is None:
            market = MarketAssumptions.from_dataset(dataset)
        if self.parametric_classes:
            params = market.subset(self.parametric_classes)
            self._mu = params.get_returns_vector()
            self._sigma = params.get_volatilities_vector()
            self._cholesky = params.cholesky()
        else:
            self._mu = self._sigma = np.zeros(0)
            self._cholesky = np.zeros((0, 0))
        self._parametric_weights = np.array([self.weights[cls] for cls in self.parametric_classes])

    def __repr__(self) -> str:
        return (f"ReturnSampler(bootstrap={[c.value for c in self.bootstrap_classes]}, "
                f"parametric={[c.value for c in self.parametric_classes]}, "
                f"block_length={self.block_length})")

    @property
    def has_history(self) -> bool:
        return self.index_range > 0

    def _block_indices(self, num_years: int, rng: np.random.Generator) -> np.ndarray:
        indices = np.empty(num_years, dtype=np.int64)
        for start_pos in range(0, num_years, self.block_length):
            span = min(self.block_length, num_years - start_pos)
            start = rng.integers(0, self.index_range)
            indices[start_pos:start_pos + span] = (start + np.arange(span)) % self.index_range
        return indices

    def _parametric_returns(self, num_years: int, rng: np.random.Generator) -> np.ndarray:
        z = rng.standard_normal((num_years, len(self.parametric_classes)))
        correlated = z @ self._cholesky.T
        class_returns = self._mu + self._sigma * correlated
        return class_returns @ self._parametric_weights

    def sample_path(self, num_years: int,
                    rng: np.random.Generator) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        """Sample a full path of portfolio returns.

        Args:
            num_years: Number of simulation years
            rng: Random generator owned by the calling run

        Returns:
            Tuple of:
            - returns: Portfolio real return per year
            - reference_indices: Historical year index per year for correlated
              inflation, or None when no historical series is available
        """
        returns = np.zeros(num_years)
        reference = None

        if self.has_history:
            if self.block_length:
                reference = self._block_indices(num_years, rng)
                if self.bootstrap_classes:
                    returns += self._bootstrap_weights @ self._history[:, reference]
            else:
                k = len(self.bootstrap_classes)
                indices = rng.integers(0, self.index_range, size=(k, num_years))
                if k:
                    rows = np.arange(k)[:, None]
                    returns += self._bootstrap_weights @ self._history[rows, indices]
                if self._stock_row is not None:
                    reference = indices[self._stock_row]
                else:
                    reference = rng.integers(0, self.index_range, size=num_years)

        if self.parametric_classes:
            returns += self._parametric_returns(num_years, rng)

        return returns, reference

    def sample(self, year: int, rng: np.random.Generator,
               block_start: Optional[int] = None) -> MarketDraw:
        """Sample a single year.

        In block mode the year index is block_start advanced by the year's
        position within its block; a fresh start is drawn when block_start
        is None.

        Args:
            year: Simulation year, starting at 1
            rng: Random generator owned by the calling run
            block_start: Start index of the current block
        """
        real_return = 0.0
        reference = None

        if self.has_history:
            if self.block_length:
                if block_start is None:
                    block_start = int(rng.integers(0, self.index_range))
                reference = (block_start + (year - 1) % self.block_length) % self.index_range
                if self.bootstrap_classes:
                    real_return += float(self._bootstrap_weights @ self._history[:, reference])
            else:
                k = len(self.bootstrap_classes)
                indices = rng.integers(0, self.index_range, size=k)
                if k:
                    real_return += float(self._bootstrap_weights @ self._history[np.arange(k), indices])
                if self._stock_row is not None:
                    reference = int(indices[self._stock_row])
                else:
                    reference = int(rng.integers(0, self.index_range))

        if self.parametric_classes:
            real_return += float(self._parametric_returns(1, rng)[0])

        return MarketDraw(real_return, reference)
