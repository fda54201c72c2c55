"""Explicit contract for what the resample collaborator returns."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

from ..errors import ResampleResultError
from ..measures.base import Measure

ResampleFunction = Callable[[Any, Any, Any, Sequence[Measure]], Any]


@dataclass(frozen=True)
class ResampleResult:
    """
    Outcome of one resampled evaluation.

    Attributes:
        aggregated_scores: Measure id -> score aggregated across folds.
        predictions: Retained predictions, needed for threshold tuning.
        error_message: Set when the evaluation failed for this configuration.
        error_dump: Optional diagnostic payload accompanying the error.
    """

    aggregated_scores: Mapping[str, float]
    predictions: Any = None
    error_message: str | None = None
    error_dump: Any = field(default=None, repr=False)

    @property
    def failed(self) -> bool:
        return bool(self.error_message)

    @classmethod
    def coerce(cls, raw: Any, measures: Sequence[Measure]) -> "ResampleResult":
        """
        Validate ``raw`` and turn it into a :class:`ResampleResult`.

        ``raw`` may be a ResampleResult, a mapping with the same keys, or any object
        exposing them as attributes. Scores are returned as floats, NaN for missing
        values reported by the collaborator itself.

        Raises:
            ResampleResultError: when the aggregated scores are absent or lack a measure.
        """
        if isinstance(raw, cls):
            payload = {
                "aggregated_scores": raw.aggregated_scores,
                "predictions": raw.predictions,
                "error_message": raw.error_message,
                "error_dump": raw.error_dump,
            }
        elif isinstance(raw, Mapping):
            payload = dict(raw)
        elif raw is not None and hasattr(raw, "aggregated_scores"):
            payload = {
                "aggregated_scores": getattr(raw, "aggregated_scores"),
                "predictions": getattr(raw, "predictions", None),
                "error_message": getattr(raw, "error_message", None),
                "error_dump": getattr(raw, "error_dump", None),
            }
        else:
            raise ResampleResultError(
                f"Resample function returned {type(raw).__name__}; expected an object with 'aggregated_scores'"
            )

        scores_raw = payload.get("aggregated_scores")
        if scores_raw is None:
            raise ResampleResultError("Resample result is missing 'aggregated_scores'")
        try:
            scores_map = dict(scores_raw)
        except (TypeError, ValueError) as exc:
            raise ResampleResultError("'aggregated_scores' must be a mapping of measure id to score") from exc

        scores: dict[str, float] = {}
        for measure in measures:
            if measure.id not in scores_map:
                raise ResampleResultError(f"Resample result has no aggregated score for measure '{measure.id}'")
            scores[measure.id] = _as_float(scores_map[measure.id])

        error_message = payload.get("error_message")
        return cls(
            aggregated_scores=scores,
            predictions=payload.get("predictions"),
            error_message=str(error_message) if error_message else None,
            error_dump=payload.get("error_dump"),
        )


def _as_float(value: Any) -> float:
    if value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ResampleResultError(f"Score {value!r} is not numeric") from exc
