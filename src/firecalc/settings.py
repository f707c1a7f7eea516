# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Process-level defaults and environment configuration.

Simulation inputs are passed explicitly as dataclasses; this module only holds
the constants they default to and the handful of knobs an application may want
to set from the environment (or a ``.env`` file):

    FIRECALC_DATA_PATH     CSV file with historical annual returns
    FIRECALC_EXECUTOR      serial | thread | process
    FIRECALC_MAX_WORKERS   worker pool size
    FIRECALC_BATCH_SIZE    runs per work unit
    FIRECALC_QUICK_RUNS    run count used by comparison analytics
    FIRECALC_LOG_LEVEL     logging level name for configure_logging()
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

# Simulation defaults
DEFAULT_NUMBER_OF_RUNS = 10000
QUICK_SIMULATION_RUNS = 1000
DEFAULT_TIME_HORIZON_YEARS = 30
DEFAULT_INFLATION_RATE = 0.02
DEFAULT_INITIAL_PORTFOLIO_VALUE = 1_000_000.0
DEFAULT_WITHDRAWAL_RATE = 0.04

# Validation bounds
MIN_NUMBER_OF_RUNS = 1
MAX_NUMBER_OF_RUNS = 100000
MIN_TIME_HORIZON_YEARS = 1
MAX_TIME_HORIZON_YEARS = 50
MIN_INFLATION_RATE = -0.05
MAX_INFLATION_RATE = 0.15
WEIGHT_SUM_TOLERANCE = 1e-3

# Engine defaults
DEFAULT_BATCH_SIZE = 500
PROGRESS_LOG_INTERVAL = 1000
EXECUTORS = ("serial", "thread", "process")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


@dataclass(frozen=True)
class Settings:
    """Environment-driven engine settings.

    Attributes:
        data_path: Path to the historical returns CSV, if configured.
        executor: Worker pool flavour used by the engine.
        max_workers: Pool size; None lets concurrent.futures decide.
        batch_size: Runs per work unit (also the cancellation granularity).
        quick_runs: Run count for comparison analytics.
        log_level: Level name used by configure_logging().
    """
    data_path: Optional[str] = None
    executor: str = "serial"
    max_workers: Optional[int] = None
    batch_size: int = DEFAULT_BATCH_SIZE
    quick_runs: int = QUICK_SIMULATION_RUNS
    log_level: str = "WARNING"

    def __post_init__(self):
        if self.executor not in EXECUTORS:
            raise ConfigurationError(
                f"executor must be one of {EXECUTORS}, got {self.executor!r}"
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")
        if self.batch_size < 1:
            raise ConfigurationError("batch_size must be at least 1")
        if not MIN_NUMBER_OF_RUNS <= self.quick_runs <= MAX_NUMBER_OF_RUNS:
            raise ConfigurationError(
                f"quick_runs must be between {MIN_NUMBER_OF_RUNS} and {MAX_NUMBER_OF_RUNS}"
            )

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> 'Settings':
        """Build settings from environment variables.

        A ``.env`` file is loaded first (without overriding variables that
        are already set).

        Args:
            dotenv_path: Explicit .env location. If None, python-dotenv
                searches upwards from the working directory.

        Raises:
            ConfigurationError: If a variable holds an unusable value.
        """
        load_dotenv(dotenv_path=dotenv_path)
        return cls(
            data_path=os.getenv("FIRECALC_DATA_PATH") or None,
            executor=os.getenv("FIRECALC_EXECUTOR", "serial").strip().lower(),
            max_workers=_env_int("FIRECALC_MAX_WORKERS", None),
            batch_size=_env_int("FIRECALC_BATCH_SIZE", DEFAULT_BATCH_SIZE),
            quick_runs=_env_int("FIRECALC_QUICK_RUNS", QUICK_SIMULATION_RUNS),
            log_level=os.getenv("FIRECALC_LOG_LEVEL", "WARNING").strip().upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings loaded once per process from the environment."""
    return Settings.from_env()


def configure_logging(level: Optional[str] = None) -> None:
    """Attach a stream handler to the root logger.

    Library code only logs through module loggers; applications call this
    once at start-up.

    Args:
        level: Level name such as "INFO". Defaults to the configured
            FIRECALC_LOG_LEVEL.
    """
    level_name = (level or get_settings().log_level).upper()
    numeric = logging.getLevelName(level_name)
    if not isinstance(numeric, int):
        raise ConfigurationError(f"Unknown log level: {level_name}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
