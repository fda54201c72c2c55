"""Fixed-design strategy: evaluate exactly the configurations the user supplied."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from ...errors import ConfigurationError
from ...measures.base import Measure
from ..control import StrategyKind, TuneControl, TuneControlDesign
from ..evaluation import TuneEvaluator
from ..opt_path import OptPath
from ..parameter_space import ParameterSpace
from .base import SearchStrategy, StrategyOutcome, StrategyRegistry


@StrategyRegistry.register
class DesignStrategy(SearchStrategy):
    """Evaluate every row of ``control.design`` in order."""

    kind = StrategyKind.DESIGN

    @classmethod
    def check_parameter_space(cls, par_set: ParameterSpace, control: TuneControl) -> None:
        assert isinstance(control, TuneControlDesign)
        for position, row in enumerate(design_rows(control.design), start=1):
            try:
                par_set.validate(row)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"Design row {position} is invalid: {exc}") from exc

    def search(
        self,
        learner: Any,
        task: Any,
        resampling: Any,
        measures: Sequence[Measure],
        par_set: ParameterSpace,
        control: TuneControl,
        opt_path: OptPath,
        evaluate: TuneEvaluator,
    ) -> StrategyOutcome:
        assert isinstance(control, TuneControlDesign)
        rows = design_rows(control.design)
        self.state.max_iterations = len(rows)

        batch_size = control.max_workers
        for start in range(0, len(rows), batch_size):
            if self.budget_exhausted(evaluate, control):
                break
            batch = rows[start : start + batch_size]
            evaluate.evaluate_many(batch)
            self.state.iterations += len(batch)
        return self.best_outcome(opt_path, measures, {"design_size": len(rows)})


def design_rows(design: Any) -> list[dict[str, Any]]:
    """Turn a DataFrame or a sequence of mappings into plain configuration dicts."""
    if hasattr(design, "to_dict") and hasattr(design, "columns"):
        records = design.to_dict(orient="records")
    else:
        records = list(design)
    rows: list[dict[str, Any]] = []
    for record in records:
        if not isinstance(record, Mapping):
            raise ConfigurationError(f"Design rows must be mappings, got {type(record).__name__}")
        rows.append({name: _plain(value) for name, value in record.items()})
    return rows


def _plain(value: Any) -> Any:
    # DataFrame cells arrive as numpy scalars
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        return value.item()
    return value
