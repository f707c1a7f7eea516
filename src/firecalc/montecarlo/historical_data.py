# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Historical annual returns used by the bootstrap sampler.

A HistoricalDataset is built once by application code (usually through
load_historical_dataset) and shared read-only by every simulation run.
All return series are annual real returns aligned by year index; the optional
inflation series is aligned the same way so a sampled year index can be reused
to pick that year's inflation.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..errors import DataUnavailableError
from ..portfolio import AssetClass
from ..settings import get_settings

logger = logging.getLogger(__name__)

# US CPI-U annual inflation, 1926-2024
US_CPI_INFLATION = (
    -0.0116, 0.0012, 0.0012, 0.0000, -0.0636, -0.0909, -0.1028, -0.0520,
    0.0152, 0.0305, 0.0145, 0.0299, 0.0290, 0.0096, 0.0000, 0.0000,
    0.0097, 0.0290, 0.0305, 0.0290, 0.0196, 0.0294, 0.0188, 0.0285,
    0.0809, 0.1434, 0.0880, 0.0299, 0.0237, 0.0076, 0.0188, 0.0179,
    0.0313, 0.0336, 0.0000, 0.0075, 0.0224, 0.0298, 0.0838, 0.0299,
    0.0596, 0.0894, 0.0299, 0.0299, 0.0199, 0.0299, 0.0617, 0.0299,
    0.0122, 0.0075, 0.0037, 0.0000, 0.0075, 0.0037, 0.0149, 0.0372,
    0.0299, 0.0186, 0.0149, 0.0111, 0.0074, 0.0111, 0.0147, 0.0294,
    0.0442, 0.0610, 0.0412, 0.0335, 0.0649, 0.1335, 0.0904, 0.0696,
    0.0486, 0.0390, 0.0385, 0.0338, 0.0325, 0.0413, 0.0361, 0.0132,
    0.0427, 0.0438, 0.0156, 0.0284, 0.0174, 0.0268, 0.0290, 0.0254,
    0.0168, 0.0233, 0.0188, 0.0340, 0.0277, 0.0161, 0.0227, 0.0284,
    0.0339, 0.0207, 0.0082,
)
US_CPI_START_YEAR = 1926


@dataclass(frozen=True)
class ReturnSummary:
    """Summary statistics of one annual return series."""
    mean: float
    median: float
    std_dev: float
    minimum: float
    maximum: float

    @classmethod
    def from_returns(cls, returns: Sequence[float]) -> 'ReturnSummary':
        values = np.asarray(returns, dtype=float)
        return cls(
            mean=float(np.mean(values)),
            median=float(np.median(values)),
            std_dev=float(np.std(values)),
            minimum=float(np.min(values)),
            maximum=float(np.max(values)),
        )


def _frozen_series(name: str, values: Iterable[float]) -> np.ndarray:
    try:
        series = np.array(list(values), dtype=float)
    except (TypeError, ValueError) as e:
        raise DataUnavailableError(f"Series '{name}' contains non-numeric values") from e
    if series.ndim != 1 or series.size == 0:
        raise DataUnavailableError(f"Series '{name}' is empty")
    if not np.all(np.isfinite(series)):
        raise DataUnavailableError(f"Series '{name}' contains missing or non-finite values")
    if np.any(series <= -1.0):
        raise DataUnavailableError(f"Series '{name}' contains a return of -100% or worse")
    series.flags.writeable = False
    return series


def to_real_returns(nominal: Sequence[float], inflation: Sequence[float]) -> np.ndarray:
    """Convert nominal returns to real with the Fisher relation.

    real = (1 + nominal) / (1 + inflation) - 1
    """
    nominal = np.asarray(nominal, dtype=float)
    inflation = np.asarray(inflation, dtype=float)
    if nominal.shape != inflation.shape:
        raise DataUnavailableError(
            f"Cannot convert {nominal.size} returns with {inflation.size} inflation values"
        )
    return (1.0 + nominal) / (1.0 + inflation) - 1.0


def parse_rate(value: Union[str, float, int, None]) -> float:
    """Parse a return cell: "12.5%" -> 0.125, "0.125" -> 0.125, 0.125 -> 0.125.

    Blank cells parse as NaN.
    """
    if value is None:
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace(",", "")
    if not text:
        return math.nan
    if text.endswith("%"):
        return float(text[:-1]) / 100.0
    return float(text)


class HistoricalDataset:
    """Per-class annual real returns plus summary statistics.

    Example:
        >>> data = HistoricalDataset(
        ...     {"stocks": [0.10, -0.20, 0.15], "bonds": [0.02, 0.05, 0.01]},
        ...     start_year=2000,
        ... )
        >>> data.has(AssetClass.STOCKS)
        True
        >>> round(data.summary(AssetClass.BONDS).mean, 4)
        0.0267
    """

    def __init__(self,
                 returns: Mapping[Union[AssetClass, str], Iterable[float]],
                 inflation: Optional[Iterable[float]] = None,
                 start_year: Optional[int] = None,
                 description: str = "",
                 source: str = ""):
        """Initialize the dataset.

        Args:
            returns: Mapping of asset class to its annual real returns
            inflation: Annual inflation aligned with the return series by index
            start_year: Calendar year of index 0
            description: Free-form label
            source: Where the data came from

        Raises:
            DataUnavailableError: If no series is given or a series is malformed
        """
        if not returns:
            raise DataUnavailableError("Historical dataset contains no return series")
        self._returns: Dict[AssetClass, np.ndarray] = {}
        for key, values in returns.items():
            try:
                asset_class = AssetClass.parse(key)
            except ValueError as e:
                raise DataUnavailableError(f"Unknown asset class in historical data: {key!r}") from e
            self._returns[asset_class] = _frozen_series(asset_class.value, values)
        self._summaries = {
            cls: ReturnSummary.from_returns(series) for cls, series in self._returns.items()
        }
        self._inflation = None
        if inflation is not None:
            self._inflation = _frozen_series("inflation", inflation)
        self.start_year = start_year
        self.description = description
        self.source = source

    def __repr__(self) -> str:
        classes = ", ".join(cls.value for cls in self.asset_classes)
        return f"HistoricalDataset(classes=[{classes}], years={self.num_years}, inflation={self.has_inflation})"

    @property
    def asset_classes(self) -> List[AssetClass]:
        """Classes with data, in canonical order."""
        return [cls for cls in AssetClass if cls in self._returns]

    @property
    def num_years(self) -> int:
        """Length of the longest return series."""
        return max(len(series) for series in self._returns.values())

    @property
    def end_year(self) -> Optional[int]:
        if self.start_year is None:
            return None
        return self.start_year + self.num_years - 1

    @property
    def has_inflation(self) -> bool:
        return self._inflation is not None

    @property
    def inflation(self) -> Optional[np.ndarray]:
        return self._inflation

    def has(self, asset_class: AssetClass) -> bool:
        return AssetClass.parse(asset_class) in self._returns

    def returns_for(self, asset_class: AssetClass) -> np.ndarray:
        """Read-only return series for a class.

        Raises:
            DataUnavailableError: If the class is not in the dataset
        """
        asset_class = AssetClass.parse(asset_class)
        try:
            return self._returns[asset_class]
        except KeyError:
            raise DataUnavailableError(
                f"No historical returns for asset class '{asset_class.value}'"
            ) from None

    def summary(self, asset_class: AssetClass) -> ReturnSummary:
        asset_class = AssetClass.parse(asset_class)
        if asset_class not in self._summaries:
            raise DataUnavailableError(
                f"No historical returns for asset class '{asset_class.value}'"
            )
        return self._summaries[asset_class]

    def require(self, classes: Iterable[AssetClass]) -> None:
        """Raise DataUnavailableError unless every class has data."""
        missing = [cls.value for cls in classes if not self.has(cls)]
        if missing:
            raise DataUnavailableError(f"Historical dataset is missing asset classes: {missing}")

    def to_dataframe(self) -> pd.DataFrame:
        """Returns (and inflation, if present) with one column per series."""
        columns = {cls.value: pd.Series(self._returns[cls]) for cls in self.asset_classes}
        if self._inflation is not None:
            columns["inflation"] = pd.Series(self._inflation)
        df = pd.DataFrame(columns)
        if self.start_year is not None:
            df.index = pd.RangeIndex(self.start_year, self.start_year + len(df), name="year")
        return df

    @classmethod
    def from_dataframe(cls,
                       df: pd.DataFrame,
                       year_column: str = "year",
                       inflation_column: str = "inflation",
                       nominal: bool = False,
                       description: str = "",
                       source: str = "") -> 'HistoricalDataset':
        """Build a dataset from a table with one row per year.

        Columns whose names match an asset class become return series; the
        inflation column (if any) becomes the inflation series; other columns
        are ignored. Cells may be decimals or percent strings.

        Args:
            df: Source table
            year_column: Name of the calendar-year column, if present
            inflation_column: Name of the inflation column
            nominal: Returns are nominal and must be deflated with the
                     inflation column
            description: Free-form label
            source: Where the data came from

        Raises:
            DataUnavailableError: If no usable column is found, a cell can't be
                                  parsed, or nominal conversion lacks inflation
        """
        normalized = {str(col).strip().lower(): col for col in df.columns}
        start_year = None
        if year_column in normalized:
            years = df[normalized[year_column]]
            if len(years):
                start_year = int(years.iloc[0])

        inflation = None
        if inflation_column in normalized:
            inflation = cls._parse_column(df[normalized[inflation_column]], inflation_column)

        returns = {}
        for key, col in normalized.items():
            if key in (year_column, inflation_column):
                continue
            try:
                asset_class = AssetClass.parse(key)
            except ValueError:
                logger.debug("Ignoring unrecognized column %r", col)
                continue
            series = cls._parse_column(df[col], key)
            if nominal:
                if inflation is None:
                    raise DataUnavailableError(
                        "Nominal returns need an inflation column for real conversion"
                    )
                series = to_real_returns(series, inflation)
            returns[asset_class] = series

        if not returns:
            raise DataUnavailableError("No asset class columns found in historical data")
        return cls(returns, inflation=inflation, start_year=start_year,
                   description=description, source=source)

    @staticmethod
    def _parse_column(column: pd.Series, name: str) -> np.ndarray:
        try:
            return np.array([parse_rate(value) for value in column], dtype=float)
        except ValueError as e:
            raise DataUnavailableError(f"Column '{name}' contains an unparseable value") from e

    @classmethod
    def synthetic(cls, seed: Optional[int] = None, num_years: int = len(US_CPI_INFLATION)) -> 'HistoricalDataset':
        """Named fallback dataset drawn from the built-in class defaults.

        Returns are normal draws at each class's default real mean and
        volatility, truncated above -95%. The inflation series is US CPI,
        repeated if more years are requested than it covers.

        Args:
            seed: Seed for the draws, for reproducible datasets
            num_years: Number of years per series
        """
        rng = np.random.default_rng(seed)
        returns = {}
        for asset_class in AssetClass:
            draws = rng.normal(asset_class.default_return, asset_class.default_volatility, num_years)
            returns[asset_class] = np.maximum(draws, -0.95)
        inflation = np.resize(np.array(US_CPI_INFLATION), num_years)
        return cls(returns, inflation=inflation, start_year=US_CPI_START_YEAR,
                   description="Synthetic returns from built-in class defaults",
                   source="synthetic")


def load_historical_dataset(path: Optional[str] = None,
                            fallback: bool = False,
                            nominal: bool = False,
                            seed: Optional[int] = None) -> HistoricalDataset:
    """Load historical returns from a CSV file.

    Args:
        path: CSV path. Defaults to the FIRECALC_DATA_PATH setting.
        fallback: Return the synthetic dataset instead of raising when the
                  file is missing or malformed
        nominal: The file holds nominal returns plus an inflation column
        seed: Seed for the synthetic fallback

    Returns:
        The parsed dataset, or the synthetic one when fallback is requested

    Raises:
        DataUnavailableError: If the data can't be loaded and fallback is False
    """
    if path is None:
        path = get_settings().data_path
    try:
        if path is None:
            raise DataUnavailableError("No historical data path configured (FIRECALC_DATA_PATH)")
        try:
            df = pd.read_csv(path)
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise DataUnavailableError(f"Cannot read historical data from {path}: {e}") from e
        dataset = HistoricalDataset.from_dataframe(df, nominal=nominal, source=str(path))
    except DataUnavailableError:
        if not fallback:
            raise
        logger.warning("Historical data unavailable at %s; using synthetic fallback dataset", path,
                       exc_info=True)
        return HistoricalDataset.synthetic(seed=seed)
    logger.info("Loaded historical data from %s: %s", path, dataset)
    return dataset
