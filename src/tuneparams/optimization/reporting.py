"""Reporting utilities for tuning runs."""

from __future__ import annotations

from dataclasses import dataclass
from statistics import mean
from typing import Any, Dict, Sequence

import pandas as pd

from ..measures.base import Measure
from .opt_path import OptPath, TrialRecord


@dataclass
class TuningReporter:
    """Produce tabular and aggregated views of an optimisation path."""

    opt_path: OptPath

    def to_table(self, *, transform: bool = False, include_failed: bool = True) -> pd.DataFrame:
        """
        Return the path as a DataFrame, one row per trial.

        Args:
            transform: Show transformed parameter values instead of raw ones.
            include_failed: Keep rows of failed (imputed) trials.
        """
        table = self.opt_path.to_frame(transform=transform)
        if not include_failed:
            table = table[table["error_message"].isna()].reset_index(drop=True)
        return table

    def summary(self, *, measures: Sequence[Measure] | None = None, top_n: int = 5) -> Dict[str, Any]:
        """
        Return aggregated statistics: top-N trials and per-measure averages and ranges.

        Failed trials are counted but left out of the averages and distributions, since
        their scores are imputed.
        """
        selected = tuple(measures) if measures is not None else self.opt_path.measures
        records = list(self.opt_path)
        successful = [record for record in records if not record.failed]

        top_entries = self.opt_path.top_n(top_n, measure=selected[0]) if records else []
        averages: dict[str, float] = {}
        distributions: dict[str, Dict[str, float]] = {}
        for measure in selected:
            values = [record.scores[measure.id] for record in successful]
            if not values:
                continue
            averages[measure.id] = mean(values)
            distributions[measure.id] = {
                "min": min(values),
                "max": max(values),
                "mean": averages[measure.id],
            }

        return {
            "n_trials": len(records),
            "n_failed": len(records) - len(successful),
            "top_n": [self._record_payload(record, selected) for record in top_entries],
            "averages": averages,
            "distributions": distributions,
        }

    def best_parameters(self) -> dict[str, Any] | None:
        """Return parameters of the highest-ranked configuration."""
        index = self.opt_path.best_index()
        if index is None:
            return None
        return dict(self.opt_path.get(index).parameters)

    @staticmethod
    def _record_payload(record: TrialRecord, measures: Sequence[Measure]) -> Dict[str, Any]:
        return {
            "index": record.index,
            "parameters": dict(record.parameters),
            "scores": {measure.id: record.scores[measure.id] for measure in measures},
            "error_message": record.error_message,
            "timestamp": record.timestamp,
        }
