# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""Guaranteed income: scheduled streams and defined-benefit plans."""

from .schedule import IncomeSchedule, IncomeSource, IncomeTimelineEntry, ScheduledIncome, total_income
from .benefits import (
    DefinedBenefitPlan,
    PlanType,
    SocialSecurityEstimator,
    income_schedule_from_plans,
    legacy_income_buckets,
)

__all__ = [
    'IncomeSchedule',
    'IncomeSource',
    'IncomeTimelineEntry',
    'ScheduledIncome',
    'total_income',
    'DefinedBenefitPlan',
    'PlanType',
    'SocialSecurityEstimator',
    'income_schedule_from_plans',
    'legacy_income_buckets',
]
