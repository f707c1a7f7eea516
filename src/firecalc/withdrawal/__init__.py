# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""Withdrawal strategies and the per-year withdrawal calculator."""

from .strategy import (
    DynamicPercentage,
    FixedDollar,
    FixedPercentage,
    Guardrails,
    WithdrawalConfiguration,
    WithdrawalStrategy,
    default_guardrails,
)
from .calculator import (
    PathOutcome,
    WithdrawalProjection,
    WithdrawalState,
    WithdrawalStep,
    calculate_withdrawal,
    plan_withdrawal,
    project_withdrawals,
    simulate_path,
)

__all__ = [
    'DynamicPercentage',
    'FixedDollar',
    'FixedPercentage',
    'Guardrails',
    'WithdrawalConfiguration',
    'WithdrawalStrategy',
    'default_guardrails',
    'PathOutcome',
    'WithdrawalProjection',
    'WithdrawalState',
    'WithdrawalStep',
    'calculate_withdrawal',
    'plan_withdrawal',
    'project_withdrawals',
    'simulate_path',
]
