"""Minimal learner interface required by the tuning core."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from ..errors import ConfigurationError


@runtime_checkable
class Learner(Protocol):
    """
    A learning algorithm as seen by the tuner.

    Training and prediction are opaque: the tuner only needs an identity and a
    way to obtain a copy configured with concrete (already transformed)
    hyperparameters. Implementations may additionally expose ``param_names``
    (the hyperparameters they accept) and ``predict_type`` (``"response"`` or
    ``"prob"``).
    """

    id: str

    def with_hyperparameters(self, params: Mapping[str, Any]) -> "Learner":
        """Return a learner configured with ``params``."""


def check_learner(learner: Any) -> Learner:
    """Ensure ``learner`` satisfies the :class:`Learner` contract."""
    if learner is None:
        raise ConfigurationError("learner must not be None")
    learner_id = getattr(learner, "id", None)
    if not isinstance(learner_id, str) or not learner_id:
        raise ConfigurationError("learner must expose a non-empty string 'id'")
    if not callable(getattr(learner, "with_hyperparameters", None)):
        raise ConfigurationError(f"Learner '{learner_id}' must implement with_hyperparameters(params)")
    return learner
