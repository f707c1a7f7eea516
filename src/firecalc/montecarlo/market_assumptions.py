# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Parametric return assumptions per asset class.

MarketAssumptions holds the mean, volatility, and correlation used whenever an
asset class is sampled from a normal distribution instead of being bootstrapped
from history: bootstrap disabled, an explicit override, or a class that the
historical dataset does not cover.
"""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, TYPE_CHECKING

import numpy as np

from ..errors import ConfigurationError
from ..portfolio import AssetClass

if TYPE_CHECKING:
    from .historical_data import HistoricalDataset


@dataclass
class AssetClassAssumptions:
    """Real return and volatility assumptions for a single asset class.

    Attributes:
        asset_class: Asset class these assumptions describe
        expected_return: Annual expected real return as decimal (e.g., 0.07 for 7%)
        volatility: Annual standard deviation as decimal (e.g., 0.18 for 18%)
    """
    asset_class: AssetClass
    expected_return: float
    volatility: float

    def __post_init__(self):
        self.asset_class = AssetClass.parse(self.asset_class)
        if self.volatility < 0:
            raise ConfigurationError(f"Volatility cannot be negative: {self.volatility}")


class MarketAssumptions:
    """Return, volatility, and correlation assumptions for asset classes.

    Without an explicit correlation matrix the classes are independent, which
    is how parametric draws are combined by default.

    Example:
        >>> assumptions = MarketAssumptions.create_default()
        >>> assumptions.asset_class_order[0]
        <AssetClass.STOCKS: 'stocks'>
        >>> assumptions.get_returns_vector()[0]
        0.07
    """

    def __init__(self,
                 asset_classes: Mapping[AssetClass, AssetClassAssumptions],
                 correlation_matrix: Optional[np.ndarray] = None,
                 asset_class_order: Optional[List[AssetClass]] = None):
        """Initialize market assumptions.

        Args:
            asset_classes: Mapping of asset class to its assumptions
            correlation_matrix: NxN correlation matrix in asset_class_order.
                               Identity if None.
            asset_class_order: Order of classes in the matrix. Defaults to
                               canonical AssetClass order.

        Raises:
            ConfigurationError: If matrix dimensions don't match or classes are missing
        """
        self.asset_classes = {AssetClass.parse(k): v for k, v in asset_classes.items()}
        if asset_class_order is None:
            asset_class_order = [cls for cls in AssetClass if cls in self.asset_classes]
        self.asset_class_order = [AssetClass.parse(cls) for cls in asset_class_order]
        n = len(self.asset_class_order)
        if correlation_matrix is None:
            correlation_matrix = np.eye(n)
        self.correlation_matrix = np.asarray(correlation_matrix, dtype=float)
        self._validate()
        self._covariance_matrix = self._compute_covariance_matrix()

    def _validate(self):
        """Validate that all inputs are consistent."""
        n = len(self.asset_class_order)

        if self.correlation_matrix.shape != (n, n):
            raise ConfigurationError(
                f"Correlation matrix shape {self.correlation_matrix.shape} "
                f"doesn't match {n} asset classes"
            )

        missing = [cls.value for cls in self.asset_class_order
                   if cls not in self.asset_classes]
        if missing:
            raise ConfigurationError(f"Asset classes missing from assumptions: {missing}")

        if not np.allclose(self.correlation_matrix, self.correlation_matrix.T):
            raise ConfigurationError("Correlation matrix must be symmetric")

        if n and not np.allclose(np.diag(self.correlation_matrix), 1.0):
            raise ConfigurationError("Correlation matrix diagonal must be 1.0")

    def _compute_covariance_matrix(self) -> np.ndarray:
        """Cov = diag(sigma) @ Corr @ diag(sigma)"""
        vol_diag = np.diag(self.get_volatilities_vector())
        return vol_diag @ self.correlation_matrix @ vol_diag

    @property
    def covariance_matrix(self) -> np.ndarray:
        return self._covariance_matrix

    def get(self, asset_class: AssetClass) -> AssetClassAssumptions:
        return self.asset_classes[AssetClass.parse(asset_class)]

    def get_returns_vector(self) -> np.ndarray:
        """Expected returns as numpy array in asset_class_order."""
        return np.array([self.asset_classes[cls].expected_return
                         for cls in self.asset_class_order])

    def get_volatilities_vector(self) -> np.ndarray:
        """Volatilities as numpy array in asset_class_order."""
        return np.array([self.asset_classes[cls].volatility
                         for cls in self.asset_class_order])

    def subset(self, classes: List[AssetClass]) -> 'MarketAssumptions':
        """Restrict to the given classes, keeping their pairwise correlations."""
        positions = [self.asset_class_order.index(cls) for cls in classes]
        corr = self.correlation_matrix[np.ix_(positions, positions)]
        return MarketAssumptions(
            {cls: self.asset_classes[cls] for cls in classes}, corr, list(classes)
        )

    def cholesky(self) -> np.ndarray:
        """Lower-triangular L with L @ L^T = correlation matrix.

        Raises:
            ConfigurationError: If the matrix is not positive definite
        """
        if not self.asset_class_order:
            return np.zeros((0, 0))
        try:
            return np.linalg.cholesky(self.correlation_matrix)
        except np.linalg.LinAlgError as e:
            raise ConfigurationError("Correlation matrix is not positive definite") from e

    def with_overrides(self,
                       custom_returns: Optional[Mapping[AssetClass, float]] = None,
                       custom_volatility: Optional[Mapping[AssetClass, float]] = None
                       ) -> 'MarketAssumptions':
        """Copy with per-class mean and/or volatility replaced."""
        custom_returns = custom_returns or {}
        custom_volatility = custom_volatility or {}
        classes = {}
        for cls in self.asset_class_order:
            base = self.asset_classes[cls]
            classes[cls] = AssetClassAssumptions(
                cls,
                custom_returns.get(cls, base.expected_return),
                custom_volatility.get(cls, base.volatility),
            )
        return MarketAssumptions(classes, self.correlation_matrix, self.asset_class_order)

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {
            cls.value: {
                "expected_return": self.asset_classes[cls].expected_return,
                "volatility": self.asset_classes[cls].volatility,
            }
            for cls in self.asset_class_order
        }

    @classmethod
    def create_default(cls) -> 'MarketAssumptions':
        """Independent classes at their built-in real return defaults."""
        asset_classes = {
            asset_class: AssetClassAssumptions(
                asset_class, asset_class.default_return, asset_class.default_volatility
            )
            for asset_class in AssetClass
        }
        return cls(asset_classes)

    @classmethod
    def from_dataset(cls,
                     dataset: Optional['HistoricalDataset'],
                     custom_returns: Optional[Mapping[AssetClass, float]] = None,
                     custom_volatility: Optional[Mapping[AssetClass, float]] = None
                     ) -> 'MarketAssumptions':
        """Build assumptions with precedence override > dataset summary > default.

        Args:
            dataset: Historical data whose summary statistics replace the
                     built-in defaults for the classes it covers. May be None.
            custom_returns: Per-class expected return overrides
            custom_volatility: Per-class volatility overrides
        """
        asset_classes = {}
        for asset_class in AssetClass:
            mean = asset_class.default_return
            vol = asset_class.default_volatility
            if dataset is not None and dataset.has(asset_class):
                summary = dataset.summary(asset_class)
                mean = summary.mean
                vol = summary.std_dev
            asset_classes[asset_class] = AssetClassAssumptions(asset_class, mean, vol)
        return cls(asset_classes).with_overrides(custom_returns, custom_volatility)
