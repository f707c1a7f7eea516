# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Portfolio snapshot consumed by the simulation engine.

A Portfolio is an ordered list of Assets. The engine only reads the value
snapshot and the per-class weights derived from it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from .errors import ConfigurationError


class AssetClass(str, Enum):
    """Closed set of asset classes understood by the engine.

    Iteration order is the canonical order used everywhere weights are
    combined.
    """
    STOCKS = "stocks"
    BONDS = "bonds"
    CORPORATE_BONDS = "corporate_bonds"
    REITS = "reits"
    REAL_ESTATE = "real_estate"
    PRECIOUS_METALS = "precious_metals"
    CRYPTO = "crypto"
    CASH = "cash"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Union['AssetClass', str]) -> 'AssetClass':
        """Coerce a name such as "Stocks" or "corporate bonds" to a member."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace(" ", "_").replace("-", "_")
        try:
            return cls(key)
        except ValueError as e:
            raise ConfigurationError(f"Unknown asset class: {value!r}") from e

    @property
    def default_return(self) -> float:
        """Built-in expected annual real return."""
        return _CLASS_DEFAULTS[self][0]

    @property
    def default_volatility(self) -> float:
        """Built-in annual real return standard deviation."""
        return _CLASS_DEFAULTS[self][1]


# (expected real return, volatility)
_CLASS_DEFAULTS = {
    AssetClass.STOCKS: (0.07, 0.18),
    AssetClass.BONDS: (0.02, 0.06),
    AssetClass.CORPORATE_BONDS: (0.03, 0.08),
    AssetClass.REITS: (0.06, 0.20),
    AssetClass.REAL_ESTATE: (0.05, 0.12),
    AssetClass.PRECIOUS_METALS: (0.02, 0.15),
    AssetClass.CRYPTO: (0.12, 0.60),
    AssetClass.CASH: (0.0, 0.01),
    AssetClass.OTHER: (0.03, 0.10),
}


@dataclass
class Asset:
    """A single holding.

    Attributes:
        name: Display name (e.g., "Total Stock Market Index")
        asset_class: Class the holding is simulated as
        quantity: Number of units held
        unit_value: Value per unit at purchase or last manual update
        ticker: Optional market symbol
        custom_expected_return: Overrides the class default expected return
        custom_volatility: Overrides the class default volatility
        current_price: Latest known price per unit; takes precedence over
            unit_value when set
    """
    name: str
    asset_class: AssetClass
    quantity: float
    unit_value: float
    ticker: Optional[str] = None
    custom_expected_return: Optional[float] = None
    custom_volatility: Optional[float] = None
    current_price: Optional[float] = None

    def __post_init__(self):
        self.asset_class = AssetClass.parse(self.asset_class)
        if self.quantity < 0:
            raise ConfigurationError(f"Quantity cannot be negative: {self.quantity}")
        if self.unit_value < 0:
            raise ConfigurationError(f"Unit value cannot be negative: {self.unit_value}")
        if self.current_price is not None and self.current_price < 0:
            raise ConfigurationError(f"Current price cannot be negative: {self.current_price}")
        if self.custom_volatility is not None and self.custom_volatility < 0:
            raise ConfigurationError(f"Volatility cannot be negative: {self.custom_volatility}")

    @property
    def total_value(self) -> float:
        price = self.current_price if self.current_price is not None else self.unit_value
        return self.quantity * price

    @property
    def expected_return(self) -> float:
        if self.custom_expected_return is not None:
            return self.custom_expected_return
        return self.asset_class.default_return

    @property
    def volatility(self) -> float:
        if self.custom_volatility is not None:
            return self.custom_volatility
        return self.asset_class.default_volatility


class Portfolio:
    """Ordered collection of assets.

    Example:
        >>> portfolio = Portfolio([
        ...     Asset("VTI", AssetClass.STOCKS, quantity=100, unit_value=6000),
        ...     Asset("BND", AssetClass.BONDS, quantity=100, unit_value=4000),
        ... ])
        >>> portfolio.allocation_weights()[AssetClass.STOCKS]
        0.6
    """

    def __init__(self, assets: Optional[Iterable[Asset]] = None, name: str = "My Portfolio"):
        self.name = name
        self.assets: List[Asset] = list(assets or [])

    def __len__(self) -> int:
        return len(self.assets)

    def __repr__(self) -> str:
        return f"Portfolio(name={self.name!r}, assets={len(self.assets)}, total_value={self.total_value:,.2f})"

    def add_asset(self, asset: Asset) -> None:
        self.assets.append(asset)

    @property
    def is_empty(self) -> bool:
        return not self.assets

    @property
    def total_value(self) -> float:
        return sum(asset.total_value for asset in self.assets)

    def assets_for(self, asset_class: AssetClass) -> List[Asset]:
        asset_class = AssetClass.parse(asset_class)
        return [asset for asset in self.assets if asset.asset_class == asset_class]

    def total_value_for(self, asset_class: AssetClass) -> float:
        return sum(asset.total_value for asset in self.assets_for(asset_class))

    def asset_allocation(self) -> Dict[AssetClass, float]:
        """Dollar value held in each class, in canonical class order."""
        allocation = {}
        for asset_class in AssetClass:
            value = self.total_value_for(asset_class)
            if value > 0:
                allocation[asset_class] = value
        return allocation

    def allocation_weights(self) -> Dict[AssetClass, float]:
        """Fraction of total value held in each class.

        Returns an empty dict when the portfolio has no value.
        """
        total = self.total_value
        if total <= 0:
            return {}
        return {cls: value / total for cls, value in self.asset_allocation().items()}

    @property
    def weighted_expected_return(self) -> float:
        """Value-weighted expected return across holdings: E[R] = w^T * mu."""
        total = self.total_value
        if total <= 0:
            return 0.0
        weights = np.array([asset.total_value / total for asset in self.assets])
        returns = np.array([asset.expected_return for asset in self.assets])
        return float(weights @ returns)

    @property
    def weighted_volatility(self) -> float:
        """Portfolio volatility assuming uncorrelated holdings.

        sigma = sqrt(sum(w_i^2 * sigma_i^2))
        """
        total = self.total_value
        if total <= 0:
            return 0.0
        weights = np.array([asset.total_value / total for asset in self.assets])
        vols = np.array([asset.volatility for asset in self.assets])
        return float(np.sqrt(np.sum((weights * vols) ** 2)))

    def class_overrides(self) -> Tuple[Dict[AssetClass, float], Dict[AssetClass, float]]:
        """Per-class expected return and volatility implied by holding-level overrides.

        A class appears only when at least one of its holdings sets a custom
        value. Holdings are weighted by value, and those without an override
        contribute the class default.

        Returns:
            (expected returns, volatilities) keyed by asset class
        """
        returns: Dict[AssetClass, float] = {}
        volatilities: Dict[AssetClass, float] = {}
        for asset_class in AssetClass:
            assets = self.assets_for(asset_class)
            if not assets:
                continue
            values = np.array([asset.total_value for asset in assets])
            if values.sum() > 0:
                weights = values / values.sum()
            else:
                weights = np.full(len(assets), 1.0 / len(assets))
            if any(asset.custom_expected_return is not None for asset in assets):
                returns[asset_class] = float(weights @ np.array([a.expected_return for a in assets]))
            if any(asset.custom_volatility is not None for asset in assets):
                volatilities[asset_class] = float(weights @ np.array([a.volatility for a in assets]))
        return returns, volatilities
