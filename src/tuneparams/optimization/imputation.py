"""Fallback scores for trials whose evaluation failed."""

from __future__ import annotations

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Sequence

import numpy as np

from ..errors import ConfigurationError
from ..measures.base import Measure

UNBOUNDED_PENALTY = float(np.finfo(np.float64).max)


@dataclass(frozen=True)
class ImputationPolicy:
    """
    One fixed fallback score per measure, resolved once at the start of a run.

    The values never change while the run is in progress, so every imputed trial of a
    run carries a comparable score.
    """

    values: Mapping[str, float]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @classmethod
    def resolve(cls, measures: Sequence[Measure], impute_val: Any = None) -> "ImputationPolicy":
        """
        Fix the fallback value of every measure.

        Precedence: explicit ``impute_val`` override, the measure's own ``impute_value``,
        its finite ``worst`` value, and finally a large finite penalty in the worse
        direction for unbounded measures.
        """
        overrides = _normalise_overrides(measures, impute_val)
        values: dict[str, float] = {}
        for measure in measures:
            if measure.id in overrides:
                value = overrides[measure.id]
            elif measure.impute_value is not None:
                value = float(measure.impute_value)
            elif math.isfinite(measure.worst):
                value = float(measure.worst)
            else:
                value = UNBOUNDED_PENALTY if measure.minimize else -UNBOUNDED_PENALTY
            if not math.isfinite(value):
                raise ConfigurationError(f"Imputation value for measure '{measure.id}' must be finite")
            values[measure.id] = value
        return cls(values=values)

    def imputed_score(self, measure: Measure | str) -> float:
        measure_id = measure.id if isinstance(measure, Measure) else measure
        try:
            return self.values[measure_id]
        except KeyError:
            raise KeyError(f"No imputation value resolved for measure '{measure_id}'") from None

    def impute(self, scores: Mapping[str, float]) -> tuple[dict[str, float], list[str]]:
        """
        Replace missing or non-finite scores with the fixed fallback values.

        Returns:
            The completed scores and the ids of the measures that were imputed.
        """
        completed: dict[str, float] = {}
        imputed: list[str] = []
        for measure_id, fallback in self.values.items():
            value = scores.get(measure_id)
            if value is None or not math.isfinite(value):
                completed[measure_id] = fallback
                imputed.append(measure_id)
            else:
                completed[measure_id] = float(value)
        return completed, imputed


def _normalise_overrides(measures: Sequence[Measure], impute_val: Any) -> dict[str, float]:
    if impute_val is None:
        return {}
    ids = [measure.id for measure in measures]
    if isinstance(impute_val, Mapping):
        unknown = sorted(set(impute_val) - set(ids))
        if unknown:
            raise ConfigurationError(f"impute_val given for unknown measure(s): {', '.join(unknown)}")
        return {key: float(value) for key, value in impute_val.items()}
    if isinstance(impute_val, (int, float)):
        return {measure_id: float(impute_val) for measure_id in ids}
    values = list(impute_val)
    if len(values) != len(ids):
        raise ConfigurationError(
            f"impute_val has {len(values)} entries but {len(ids)} measure(s) were given"
        )
    return {measure_id: float(value) for measure_id, value in zip(ids, values)}
