"""Base classes, registry and contract for tuning search strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Mapping, Sequence

from ...errors import ConfigurationError, StrategyError, UnknownStrategyError
from ...measures.base import Measure
from ..control import StrategyKind, TuneControl
from ..evaluation import TuneEvaluator
from ..opt_path import OptPath
from ..parameter_space import ParameterSpace


@dataclass
class StrategyState:
    """Mutable state shared between strategy iterations."""

    iterations: int = 0
    max_iterations: int | None = None


@dataclass(frozen=True)
class StrategyOutcome:
    """Winning trial chosen by a strategy, plus its diagnostic payload."""

    configuration: Mapping[str, Any]
    scores: Mapping[str, float]
    index: int
    diagnostics: Mapping[str, Any] = field(default_factory=dict)


class SearchStrategy(ABC):
    """
    Contract every search algorithm satisfies.

    A strategy decides which configurations to try and when to stop. It measures
    configurations only through ``evaluate`` (sequentially, or as an independent batch
    via ``evaluate.evaluate_many``) and never writes to the optimisation path itself.
    The configuration it returns must be one that ``evaluate`` recorded. Failed trials
    arrive as ordinary, imputed scores.
    """

    kind: ClassVar[StrategyKind]

    def __init__(self) -> None:
        self.state = StrategyState()

    @classmethod
    def check_parameter_space(cls, par_set: ParameterSpace, control: TuneControl) -> None:
        """Raise ConfigurationError when the strategy cannot explore ``par_set``."""

    @abstractmethod
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
        """Explore ``par_set`` and return the winning trial."""

    def best_outcome(
        self,
        opt_path: OptPath,
        measures: Sequence[Measure],
        diagnostics: Mapping[str, Any] | None = None,
    ) -> StrategyOutcome:
        """Select the best recorded trial by the primary measure; the earliest wins ties."""
        index = opt_path.best_index(measures[0])
        if index is None:
            raise StrategyError(f"{type(self).__name__} did not evaluate any configuration")
        record = opt_path.get(index)
        payload = {"iterations": self.state.iterations}
        payload.update(diagnostics or {})
        return StrategyOutcome(
            configuration=dict(record.parameters),
            scores=dict(record.scores),
            index=record.index,
            diagnostics=payload,
        )

    @staticmethod
    def evaluation_budget(control: TuneControl, default: int) -> int:
        """Number of evaluations allowed: ``control.budget`` when set, else ``default``."""
        return control.budget if control.budget is not None else default

    @staticmethod
    def budget_exhausted(evaluate: TuneEvaluator, control: TuneControl) -> bool:
        """True when the evaluation count or wall-clock budget of ``control`` is used up."""
        if control.budget is not None and evaluate.n_evaluations >= control.budget:
            return True
        if control.time_budget is not None and evaluate.elapsed >= control.time_budget:
            return True
        return False


def require_numeric_space(strategy_name: str, par_set: ParameterSpace) -> None:
    """Reject spaces with non-numeric or dependent parameters."""
    if not par_set.is_numeric():
        offending = [definition.name for definition in par_set if not definition.is_numeric()]
        raise ConfigurationError(
            f"{strategy_name} can only tune numeric and integer parameters; offending: {', '.join(offending)}"
        )
    if par_set.has_dependencies():
        raise ConfigurationError(f"{strategy_name} does not support dependent parameters")


class StrategyRegistry:
    """Registry mapping strategy kinds to their implementation classes."""

    _strategies: Dict[StrategyKind, type[SearchStrategy]] = {}

    @classmethod
    def register(cls, strategy_class: type[SearchStrategy]) -> type[SearchStrategy]:
        """
        Class decorator registering a strategy under its ``kind``.

        Usage:
            @StrategyRegistry.register
            class GridSearchStrategy(SearchStrategy):
                kind = StrategyKind.GRID
                ...
        """
        kind = getattr(strategy_class, "kind", None)
        if not isinstance(kind, StrategyKind):
            raise TypeError(f"{strategy_class.__name__} must declare a StrategyKind 'kind'")
        cls._strategies[kind] = strategy_class
        return strategy_class

    @classmethod
    def get(cls, kind: Any) -> type[SearchStrategy]:
        """
        Look up the strategy registered for ``kind``.

        Raises:
            UnknownStrategyError: if no strategy is registered for ``kind``.
        """
        try:
            return cls._strategies[StrategyKind(kind)]
        except (KeyError, ValueError):
            available = ", ".join(item.value for item in cls._strategies) or "none registered"
            raise UnknownStrategyError(
                f"Tuning algorithm for '{kind}' does not exist. Available: {available}"
            ) from None

    @classmethod
    def list_strategies(cls) -> List[StrategyKind]:
        return list(cls._strategies)


def strategy_for(control: TuneControl) -> type[SearchStrategy]:
    """Select the strategy implementation by the kind tag of ``control``."""
    kind = getattr(control, "kind", None)
    if kind is None:
        raise UnknownStrategyError(f"Control class {type(control).__name__} does not declare a strategy kind")
    return StrategyRegistry.get(kind)
