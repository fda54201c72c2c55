"""Exception taxonomy for tuning runs."""

from __future__ import annotations

from typing import Any


class TuningError(Exception):
    """Base class for every error raised by the tuning package."""


class ConfigurationError(TuningError, ValueError):
    """Invalid input detected before any trial runs. Never retried."""


class UnknownStrategyError(ConfigurationError):
    """The control object names a strategy kind with no registered implementation."""


class ResampleResultError(TuningError):
    """The resample collaborator returned an object that violates the result contract."""


class StrategyError(TuningError):
    """A search strategy failed internally (e.g. its own collaborator did not converge)."""


class TuningInterrupted(TuningError):
    """Raised between trials once the caller requested a stop."""

    def __init__(self, message: str = "Tuning interrupted by caller", *, opt_path: Any = None) -> None:
        super().__init__(message)
        self.opt_path = opt_path
