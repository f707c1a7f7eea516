# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Age-gated guaranteed income.

Simulation year 1 is the first retirement year, at the retirement age itself,
so the age in year y is retirement_age + y - 1.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from ..errors import ConfigurationError


@dataclass(frozen=True)
class ScheduledIncome:
    """A guaranteed income stream such as Social Security or a pension.

    Attributes:
        name: Display name
        annual_amount: Annual amount in today's dollars (> 0)
        start_age: First age at which the stream pays
        end_age: Last age at which the stream pays, or None for life
        inflation_adjusted: COLA stream; keeps constant real value. A non-COLA
                            stream is fixed in nominal dollars and loses
                            purchasing power as inflation accumulates.
    """
    name: str
    annual_amount: float
    start_age: int
    end_age: Optional[int] = None
    inflation_adjusted: bool = True

    def __post_init__(self):
        if self.annual_amount <= 0:
            raise ConfigurationError(
                f"Income '{self.name}' annual_amount must be positive: {self.annual_amount}"
            )
        if self.start_age < 0:
            raise ConfigurationError(f"Income '{self.name}' start_age cannot be negative")
        if self.end_age is not None and self.end_age < self.start_age:
            raise ConfigurationError(
                f"Income '{self.name}' end_age {self.end_age} is before start_age {self.start_age}"
            )

    def is_active(self, age: int) -> bool:
        if age < self.start_age:
            return False
        return self.end_age is None or age <= self.end_age

    def real_amount(self, age: int, inflation_index: float = 1.0) -> float:
        """Real value paid at the given age.

        Args:
            age: Age in the simulation year
            inflation_index: Cumulative inflation since year 1
        """
        if not self.is_active(age):
            return 0.0
        if self.inflation_adjusted:
            return self.annual_amount
        return self.annual_amount / inflation_index


def age_in_year(year: int, retirement_age: int) -> int:
    return retirement_age + year - 1


def total_income(year: int,
                 retirement_age: Optional[int],
                 streams: Iterable[ScheduledIncome],
                 inflation_index: float = 1.0) -> float:
    """Total real income from all streams active in a simulation year.

    Returns 0 when retirement_age is None or there are no streams.
    """
    if retirement_age is None:
        return 0.0
    age = age_in_year(year, retirement_age)
    return sum(stream.real_amount(age, inflation_index) for stream in streams)


@dataclass(frozen=True)
class IncomeSource:
    name: str
    amount: float
    inflation_adjusted: bool


@dataclass(frozen=True)
class IncomeTimelineEntry:
    year: int
    age: int
    sources: Tuple[IncomeSource, ...]
    total: float


class IncomeSchedule:
    """Immutable collection of ScheduledIncome streams.

    Example:
        >>> schedule = IncomeSchedule([ScheduledIncome("Social Security", 30000, 67)])
        >>> schedule.total_income(year=1, retirement_age=67)
        30000
    """

    def __init__(self, streams: Iterable[ScheduledIncome] = ()):
        self._streams = tuple(streams)
        for stream in self._streams:
            if not isinstance(stream, ScheduledIncome):
                raise ConfigurationError(f"Not a ScheduledIncome: {stream!r}")

    def __iter__(self) -> Iterator[ScheduledIncome]:
        return iter(self._streams)

    def __len__(self) -> int:
        return len(self._streams)

    def __eq__(self, other) -> bool:
        if not isinstance(other, IncomeSchedule):
            return NotImplemented
        return self._streams == other._streams

    def __hash__(self) -> int:
        return hash(self._streams)

    def __repr__(self) -> str:
        return f"IncomeSchedule({list(self._streams)!r})"

    @property
    def streams(self) -> Tuple[ScheduledIncome, ...]:
        return self._streams

    def total_income(self, year: int, retirement_age: Optional[int],
                     inflation_index: float = 1.0) -> float:
        return total_income(year, retirement_age, self._streams, inflation_index)

    def first_income_year(self, retirement_age: int) -> Optional[int]:
        """First simulation year in which any stream pays, or None."""
        if not self._streams:
            return None
        earliest = min(stream.start_age for stream in self._streams)
        return max(1, earliest - retirement_age + 1)

    def timeline(self, years: int, retirement_age: int,
                 inflation_rate: float = 0.0) -> List[IncomeTimelineEntry]:
        """Year-by-year breakdown of active streams at a constant inflation rate."""
        entries = []
        for year in range(1, years + 1):
            age = age_in_year(year, retirement_age)
            index = (1.0 + inflation_rate) ** (year - 1)
            sources = []
            for stream in self._streams:
                amount = stream.real_amount(age, index)
                if amount > 0:
                    sources.append(IncomeSource(stream.name, amount, stream.inflation_adjusted))
            entries.append(IncomeTimelineEntry(
                year=year,
                age=age,
                sources=tuple(sources),
                total=sum(source.amount for source in sources),
            ))
        return entries
