"""Append-only ledger of every trial evaluated during a tuning run."""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from threading import Lock
from types import MappingProxyType
from typing import Any, Iterator, List, Mapping, Sequence

import pandas as pd

from ..measures.base import Measure
from .parameter_space import ParameterSpace

EXTRA_FIELDS = ("predictions", "threshold", "error_dump")


@dataclass(frozen=True)
class TrialRecord:
    """Outcome of a single configuration evaluation."""

    index: int
    parameters: Mapping[str, Any]
    scores: Mapping[str, float]
    exec_time: float = 0.0
    error_message: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))
        object.__setattr__(self, "scores", MappingProxyType(dict(self.scores)))
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    @property
    def failed(self) -> bool:
        return self.error_message is not None

    def to_dict(self, *, include_predictions: bool = False) -> dict[str, Any]:
        """Convert the record into a JSON serialisable dictionary."""
        extra = {key: value for key, value in self.extra.items() if include_predictions or key != "predictions"}
        return {
            "index": self.index,
            "parameters": dict(self.parameters),
            "scores": dict(self.scores),
            "exec_time": self.exec_time,
            "error_message": self.error_message,
            "extra": extra,
            "timestamp": self.timestamp,
        }


class OptPath:
    """
    Thread-safe, append-only sequence of :class:`TrialRecord`.

    The shape (parameter names, measure ids and whether the extra columns exist) is
    fixed at construction; every appended record must conform to it. Records are never
    mutated or removed once written.
    """

    def __init__(
        self,
        par_set: ParameterSpace,
        measures: Sequence[Measure],
        *,
        include_extra: bool = False,
    ) -> None:
        self.par_set = par_set
        self.measures: tuple[Measure, ...] = tuple(measures)
        self.include_extra = include_extra
        self._items: List[TrialRecord] = []
        self._lock = Lock()

    @property
    def parameter_names(self) -> list[str]:
        return self.par_set.names

    @property
    def measure_ids(self) -> list[str]:
        return [measure.id for measure in self.measures]

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[TrialRecord]:
        return iter(self._snapshot())

    def __getitem__(self, position: int) -> TrialRecord:
        with self._lock:
            return self._items[position]

    @property
    def records(self) -> tuple[TrialRecord, ...]:
        return tuple(self._snapshot())

    def append(
        self,
        parameters: Mapping[str, Any],
        scores: Mapping[str, float],
        *,
        exec_time: float = 0.0,
        error_message: str | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> TrialRecord:
        """
        Validate a trial against the path's shape and append it.

        The sequence index is assigned under the lock, so concurrent appends never
        interleave or skip an index.

        Raises:
            ValueError: When scores, parameters or extra fields do not match the shape.
        """
        self._check_shape(parameters, scores, extra or {})
        with self._lock:
            record = TrialRecord(
                index=len(self._items) + 1,
                parameters=parameters,
                scores=scores,
                exec_time=exec_time,
                error_message=error_message,
                extra=extra or {},
            )
            self._items.append(record)
        return record

    def get(self, index: int) -> TrialRecord:
        """Return the record with sequence ``index`` (1-based)."""
        with self._lock:
            if not 1 <= index <= len(self._items):
                raise IndexError(f"No trial with index {index}; path holds {len(self._items)} trial(s)")
            return self._items[index - 1]

    def failed_records(self) -> list[TrialRecord]:
        return [record for record in self._snapshot() if record.failed]

    def best_index(self, measure: Measure | None = None) -> int | None:
        """
        Index of the best trial under ``measure`` (the primary measure by default).

        The first trial wins on ties. Returns None for an empty path.
        """
        target = measure or self.measures[0]
        best: TrialRecord | None = None
        for record in self._snapshot():
            if best is None or target.is_better(record.scores[target.id], best.scores[target.id]):
                best = record
        return best.index if best is not None else None

    def top_n(self, n: int = 10, *, measure: Measure | None = None) -> list[TrialRecord]:
        target = measure or self.measures[0]
        return sorted(
            self._snapshot(),
            key=lambda record: (target.to_minimize(record.scores[target.id]), record.index),
        )[:n]

    def to_frame(self, *, transform: bool = False) -> pd.DataFrame:
        """
        Tabular view: one row per trial, one column per parameter, measure and extra field.

        Args:
            transform: Report transformed parameter values instead of raw ones. Inactive
                parameters are NaN either way.
        """
        rows = [self._row(record, transform=transform) for record in self._snapshot()]
        return pd.DataFrame(rows, columns=self._columns())

    def export_csv(self, destination: str | Path, *, transform: bool = False) -> Path:
        destination_path = Path(destination)
        destination_path.parent.mkdir(parents=True, exist_ok=True)
        frame = self.to_frame(transform=transform)
        if "predictions" in frame.columns:
            frame = frame.drop(columns=["predictions"])
        frame.to_csv(destination_path, index=False)
        return destination_path

    def export_json(self, destination: str | Path) -> Path:
        destination_path = Path(destination)
        destination_path.parent.mkdir(parents=True, exist_ok=True)

        payload = {
            "parameters": self.parameter_names,
            "measures": self.measure_ids,
            "include_extra": self.include_extra,
            "trials": [record.to_dict() for record in self._snapshot()],
        }
        destination_path.write_text(json.dumps(payload, indent=2, default=_json_default), encoding="utf-8")
        return destination_path

    def _snapshot(self) -> List[TrialRecord]:
        with self._lock:
            return list(self._items)

    def _check_shape(
        self,
        parameters: Mapping[str, Any],
        scores: Mapping[str, float],
        extra: Mapping[str, Any],
    ) -> None:
        unknown_parameters = sorted(set(parameters) - set(self.parameter_names))
        if unknown_parameters:
            raise ValueError(f"Unknown parameter(s) for this path: {', '.join(unknown_parameters)}")
        if set(scores) != set(self.measure_ids):
            raise ValueError(
                f"Scores must cover exactly the measures {self.measure_ids}, got {sorted(scores)}"
            )
        for measure_id, value in scores.items():
            if not isinstance(value, (int, float)) or math.isnan(value):
                raise ValueError(f"Score for measure '{measure_id}' must be a number, got {value!r}")
        if extra and not self.include_extra:
            raise ValueError("This path was built without extra columns")
        unknown_extra = sorted(set(extra) - set(EXTRA_FIELDS))
        if unknown_extra:
            raise ValueError(f"Unknown extra field(s): {', '.join(unknown_extra)}")

    def _columns(self) -> list[str]:
        columns = [*self.parameter_names, *self.measure_ids, "index", "error_message", "exec_time", "timestamp"]
        if self.include_extra:
            columns.extend(EXTRA_FIELDS)
        return columns

    def _row(self, record: TrialRecord, *, transform: bool) -> dict[str, Any]:
        values = self.par_set.transform(record.parameters) if transform else record.parameters
        row: dict[str, Any] = {name: values.get(name, math.nan) for name in self.parameter_names}
        row.update(record.scores)
        row["index"] = record.index
        row["error_message"] = record.error_message
        row["exec_time"] = record.exec_time
        row["timestamp"] = record.timestamp
        if self.include_extra:
            for name in EXTRA_FIELDS:
                row[name] = record.extra.get(name)
        return row


def _json_default(value: Any) -> Any:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "tolist"):
        return value.tolist()
    try:
        return asdict(value)
    except TypeError:
        pass
    return str(value)
