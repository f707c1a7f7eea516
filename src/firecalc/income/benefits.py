# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Defined-benefit plans and a simplified Social Security estimator.

Plans convert to ScheduledIncome streams for the engine, or to the legacy
(real, nominal) income buckets when no schedule is used.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from ..errors import ConfigurationError
from .schedule import IncomeSchedule, ScheduledIncome


class PlanType(str, Enum):
    SOCIAL_SECURITY = "social_security"
    PENSION = "pension"
    ANNUITY = "annuity"
    OTHER = "other"

    @property
    def default_inflation_adjusted(self) -> bool:
        """Social Security has a COLA; private plans usually don't."""
        return self == PlanType.SOCIAL_SECURITY


@dataclass(frozen=True)
class DefinedBenefitPlan:
    """A pension, annuity, or Social Security benefit.

    Attributes:
        name: Display name
        plan_type: Kind of plan
        annual_benefit: Annual benefit in today's dollars
        start_age: Age at which payments begin
        inflation_adjusted: COLA flag. None picks the plan type's default.
    """
    name: str
    plan_type: PlanType
    annual_benefit: float
    start_age: int
    inflation_adjusted: Optional[bool] = None

    def __post_init__(self):
        object.__setattr__(self, "plan_type", PlanType(self.plan_type))
        if self.inflation_adjusted is None:
            object.__setattr__(self, "inflation_adjusted", self.plan_type.default_inflation_adjusted)
        if self.annual_benefit <= 0:
            raise ConfigurationError(f"Plan '{self.name}' benefit must be positive")
        if self.start_age < 0:
            raise ConfigurationError(f"Plan '{self.name}' start_age cannot be negative")

    @property
    def monthly_benefit(self) -> float:
        return self.annual_benefit / 12

    def is_active(self, age: int) -> bool:
        return age >= self.start_age

    def real_benefit(self, years_into_retirement: int, inflation_rate: float) -> float:
        """Real value of the benefit in a given retirement year.

        COLA plans hold their purchasing power. Others erode at the given
        inflation rate from year 1.
        """
        if self.inflation_adjusted:
            return self.annual_benefit
        return self.annual_benefit / (1 + inflation_rate) ** (years_into_retirement - 1)

    def present_value(self, current_age: int, discount_rate: float = 0.03,
                      life_expectancy: int = 90) -> float:
        """Discounted value of payments from current_age through life_expectancy."""
        pv = 0.0
        for age in range(current_age, life_expectancy + 1):
            if self.is_active(age):
                pv += self.annual_benefit / (1 + discount_rate) ** (age - current_age)
        return pv

    def to_scheduled_income(self) -> ScheduledIncome:
        return ScheduledIncome(
            name=self.name,
            annual_amount=self.annual_benefit,
            start_age=self.start_age,
            inflation_adjusted=self.inflation_adjusted,
        )


def income_schedule_from_plans(plans: Iterable[DefinedBenefitPlan]) -> IncomeSchedule:
    return IncomeSchedule(plan.to_scheduled_income() for plan in plans)


def legacy_income_buckets(plans: Iterable[DefinedBenefitPlan],
                          age: Optional[int] = None) -> Tuple[float, float]:
    """Split plan benefits into (real, nominal) totals.

    These feed WithdrawalConfiguration.fixed_income_real and
    fixed_income_nominal. When age is given, only plans paying at that age
    are counted.
    """
    real = 0.0
    nominal = 0.0
    for plan in plans:
        if age is not None and not plan.is_active(age):
            continue
        if plan.inflation_adjusted:
            real += plan.annual_benefit
        else:
            nominal += plan.annual_benefit
    return real, nominal


class SocialSecurityEstimator:
    """Rough Social Security benefit estimate using 2024 parameters.

    This is the simplified three-bracket PIA formula on an AIME derived from a
    flat average income. It ignores wage indexing and the 35-year earnings
    window.
    """

    FIRST_BEND_POINT = 1174.0
    SECOND_BEND_POINT = 7078.0
    MAX_AIME = 14000.0
    EARLIEST_CLAIM_AGE = 62
    LATEST_CLAIM_AGE = 70

    @staticmethod
    def full_retirement_age(birth_year: int) -> int:
        if birth_year <= 1937:
            return 65
        if birth_year <= 1959:
            return 66
        return 67

    @classmethod
    def primary_insurance_amount(cls, aime: float) -> float:
        """Monthly benefit at full retirement age for a given AIME."""
        aime = min(max(aime, 0.0), cls.MAX_AIME)
        pia = 0.90 * min(aime, cls.FIRST_BEND_POINT)
        if aime > cls.FIRST_BEND_POINT:
            pia += 0.32 * (min(aime, cls.SECOND_BEND_POINT) - cls.FIRST_BEND_POINT)
        if aime > cls.SECOND_BEND_POINT:
            pia += 0.15 * (aime - cls.SECOND_BEND_POINT)
        return pia

    @staticmethod
    def claiming_adjustment(claim_age: int, full_retirement_age: int) -> float:
        """Benefit multiplier for claiming before or after full retirement age.

        -6.7% per year early (floor 70%), +8% per year delayed (cap 132%).
        """
        years = claim_age - full_retirement_age
        if years < 0:
            return max(0.70, 1.0 + 0.067 * years)
        if years > 0:
            return min(1.32, 1.0 + 0.08 * years)
        return 1.0

    @classmethod
    def estimate_benefit(cls, average_annual_income: float, birth_year: int,
                         claim_age: int = 67) -> float:
        """Estimated annual benefit in today's dollars.

        Raises:
            ConfigurationError: If claim_age is outside 62-70
        """
        if not cls.EARLIEST_CLAIM_AGE <= claim_age <= cls.LATEST_CLAIM_AGE:
            raise ConfigurationError(
                f"claim_age must be between {cls.EARLIEST_CLAIM_AGE} and {cls.LATEST_CLAIM_AGE}"
            )
        pia = cls.primary_insurance_amount(average_annual_income / 12)
        factor = cls.claiming_adjustment(claim_age, cls.full_retirement_age(birth_year))
        return pia * factor * 12

    @classmethod
    def create_plan(cls, average_annual_income: float, birth_year: int,
                    claim_age: int = 67, name: str = "Social Security") -> DefinedBenefitPlan:
        return DefinedBenefitPlan(
            name=name,
            plan_type=PlanType.SOCIAL_SECURITY,
            annual_benefit=cls.estimate_benefit(average_annual_income, birth_year, claim_age),
            start_age=claim_age,
        )
