"""Immutable bundle returned by a tuning run."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

import pandas as pd

from .control import TuneControl
from .opt_path import OptPath, TrialRecord


@dataclass(frozen=True)
class TuneResult:
    """
    Outcome of :func:`tune_params`.

    Attributes:
        learner_id: Identity of the tuned learner.
        x: Winning raw configuration (None when a run was aborted before any trial).
        x_transformed: Winning configuration with transforms applied and inactive
            parameters omitted.
        y: Scores of the winning trial, keyed by measure id.
        threshold: Decision threshold of the winning trial when threshold tuning ran.
        opt_path: The completed optimisation path.
        control: Control object used, carrying the resolved imputation values.
        best_index: Sequence index of the winning trial in ``opt_path``.
        diagnostics: Strategy payload plus run-level facts (failures, abort, strategy errors).
    """

    learner_id: str
    x: Mapping[str, Any] | None
    x_transformed: Mapping[str, Any] | None
    y: Mapping[str, float]
    opt_path: OptPath
    control: TuneControl
    best_index: int | None = None
    threshold: float | None = None
    diagnostics: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.x is not None:
            object.__setattr__(self, "x", MappingProxyType(dict(self.x)))
        if self.x_transformed is not None:
            object.__setattr__(self, "x_transformed", MappingProxyType(dict(self.x_transformed)))
        object.__setattr__(self, "y", MappingProxyType(dict(self.y)))
        object.__setattr__(self, "diagnostics", MappingProxyType(dict(self.diagnostics)))

    @property
    def best_record(self) -> TrialRecord | None:
        if self.best_index is None:
            return None
        return self.opt_path.get(self.best_index)

    @property
    def n_failed(self) -> int:
        return len(self.opt_path.failed_records())

    def opt_path_frame(self, *, transform: bool = False) -> pd.DataFrame:
        return self.opt_path.to_frame(transform=transform)

    def get_opt_path(self, *, as_frame: bool = True) -> pd.DataFrame | OptPath:
        """Return the optimisation path as a DataFrame, or the raw path when ``as_frame`` is False."""
        if as_frame:
            return self.opt_path_frame()
        return self.opt_path

    def __str__(self) -> str:
        if self.x is None:
            return f"Tune result: learner {self.learner_id}, no trial evaluated"
        params = ", ".join(f"{name}={value!r}" for name, value in self.x.items())
        scores = ", ".join(f"{name}={value:.6g}" for name, value in self.y.items())
        return f"Tune result: learner {self.learner_id}; {params} : {scores}"
