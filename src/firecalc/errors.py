# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""Exception types raised by the simulation engine."""


class FireCalcError(Exception):
    """Base class for all firecalc errors."""


class ConfigurationError(FireCalcError, ValueError):
    """Invalid simulation input, detected before any run starts.

    Examples are an empty portfolio, a non-positive run count or horizon,
    allocation weights that don't sum to 1, or a fixed-dollar strategy
    without an annual amount.
    """


class DataUnavailableError(FireCalcError):
    """Historical dataset is missing or malformed."""


class SimulationCancelledError(FireCalcError):
    """Raised when a simulation is cancelled between batches of runs."""
