"""Tuning control objects: strategy selection plus orchestration options."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, ClassVar, Mapping, Sequence

from ..errors import ConfigurationError, UnknownStrategyError

ImputeValue = float | Sequence[float] | Mapping[str, float] | None


class StrategyKind(str, Enum):
    """Tag selecting the search strategy that runs a tuning control."""

    RANDOM = "random"
    GRID = "grid"
    DESIGN = "design"
    CMAES = "cmaes"
    GENSA = "gensa"
    MBO = "mbo"
    IRACE = "irace"


@dataclass(frozen=True)
class TuneControl:
    """
    Options shared by every strategy.

    Attributes:
        same_resampling_instance: Instantiate a resampling description once so every trial
            sees identical splits.
        tune_threshold: Retain predictions per trial and optimise the decision threshold of
            the primary measure after each evaluation.
        tune_threshold_args: Extra arguments for the threshold search (``nsub``).
        impute_val: Override for the score recorded when an evaluation fails; a number for
            every measure, a sequence in measure order, or a mapping by measure id.
        on_error_dump: Keep a full traceback for failed trials.
        budget: Maximum number of evaluations.
        time_budget: Maximum wall-clock seconds before a strategy stops proposing trials.
        max_workers: Number of threads evaluating the independent candidates of one round.
        random_seed: Seed for randomised strategies.
    """

    kind: ClassVar[StrategyKind]

    same_resampling_instance: bool = True
    tune_threshold: bool = False
    tune_threshold_args: Mapping[str, Any] = field(default_factory=dict)
    impute_val: ImputeValue = None
    on_error_dump: bool = False
    budget: int | None = None
    time_budget: float | None = None
    max_workers: int = 1
    random_seed: int | None = None

    def __post_init__(self) -> None:
        if self.budget is not None:
            _check_positive_int("budget", self.budget)
        if self.time_budget is not None and self.time_budget <= 0:
            raise ConfigurationError("time_budget must be positive")
        _check_positive_int("max_workers", self.max_workers)
        nsub = self.tune_threshold_args.get("nsub")
        if nsub is not None:
            _check_positive_int("tune_threshold_args['nsub']", nsub)

    @property
    def need_extra(self) -> bool:
        """True when trials must keep predictions or error dumps."""
        return self.tune_threshold or self.on_error_dump

    def with_impute_values(self, values: Mapping[str, float]) -> "TuneControl":
        return replace(self, impute_val=dict(values))


@dataclass(frozen=True)
class TuneControlRandom(TuneControl):
    """Uniform random sampling of ``max_iterations`` configurations."""

    kind: ClassVar[StrategyKind] = StrategyKind.RANDOM

    max_iterations: int = 100

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_positive_int("max_iterations", self.max_iterations)


@dataclass(frozen=True)
class TuneControlGrid(TuneControl):
    """
    Exhaustive search over a grid with ``resolution`` points per numeric parameter.

    ``values`` maps parameter names to explicit candidate lists that replace the
    generated candidates of those parameters.
    """

    kind: ClassVar[StrategyKind] = StrategyKind.GRID

    resolution: int = 10
    values: Mapping[str, Sequence[Any]] | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_positive_int("resolution", self.resolution)


@dataclass(frozen=True)
class TuneControlDesign(TuneControl):
    """Evaluate a fixed, user supplied design (rows of configurations)."""

    kind: ClassVar[StrategyKind] = StrategyKind.DESIGN

    design: Any = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.design is None or len(self.design) == 0:
            raise ConfigurationError("TuneControlDesign requires a non-empty design")


@dataclass(frozen=True)
class TuneControlCMAES(TuneControl):
    """Covariance matrix adaptation evolution strategy on a numeric space."""

    kind: ClassVar[StrategyKind] = StrategyKind.CMAES

    population_size: int | None = None
    sigma: float = 0.3
    start: Mapping[str, float] | None = None
    max_generations: int | None = None
    tolerance: float = 1e-8

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.population_size is not None:
            _check_positive_int("population_size", self.population_size)
            if self.population_size < 2:
                raise ConfigurationError("population_size must be at least 2")
        if self.max_generations is not None:
            _check_positive_int("max_generations", self.max_generations)
        if self.sigma <= 0:
            raise ConfigurationError("sigma must be positive")


@dataclass(frozen=True)
class TuneControlGenSA(TuneControl):
    """Simulated annealing on a numeric space."""

    kind: ClassVar[StrategyKind] = StrategyKind.GENSA

    max_calls: int = 100
    start: Mapping[str, float] | None = None
    temperature: float = 1.0
    min_temperature: float = 1e-3
    cooling: float = 0.95
    step_size: float = 0.1

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_positive_int("max_calls", self.max_calls)
        if not 0 < self.cooling < 1:
            raise ConfigurationError("cooling must lie strictly between 0 and 1")
        if self.temperature <= 0 or self.min_temperature <= 0:
            raise ConfigurationError("temperatures must be positive")
        if self.step_size <= 0:
            raise ConfigurationError("step_size must be positive")


@dataclass(frozen=True)
class TuneControlMBO(TuneControl):
    """Model-based optimisation with a tree-structured Parzen estimator."""

    kind: ClassVar[StrategyKind] = StrategyKind.MBO

    iterations: int = 50
    n_initial: int = 10

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_positive_int("iterations", self.iterations)
        _check_positive_int("n_initial", self.n_initial)


@dataclass(frozen=True)
class TuneControlIrace(TuneControl):
    """Iterated racing: sample around elites, eliminate all but the best survivors."""

    kind: ClassVar[StrategyKind] = StrategyKind.IRACE

    max_experiments: int = 200
    n_iterations: int | None = None
    min_survival: int | None = None
    n_candidates: int | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_positive_int("max_experiments", self.max_experiments)
        for name in ("n_iterations", "min_survival", "n_candidates"):
            value = getattr(self, name)
            if value is not None:
                _check_positive_int(name, value)


CONTROL_CLASSES: dict[StrategyKind, type[TuneControl]] = {
    StrategyKind.RANDOM: TuneControlRandom,
    StrategyKind.GRID: TuneControlGrid,
    StrategyKind.DESIGN: TuneControlDesign,
    StrategyKind.CMAES: TuneControlCMAES,
    StrategyKind.GENSA: TuneControlGenSA,
    StrategyKind.MBO: TuneControlMBO,
    StrategyKind.IRACE: TuneControlIrace,
}


def make_tune_control(kind: StrategyKind | str, **options: Any) -> TuneControl:
    """Create the control object for ``kind`` with the given options."""
    strategy_kind = _resolve_kind(kind)
    control_class = CONTROL_CLASSES[strategy_kind]
    known = {item.name for item in fields(control_class)}
    unknown = sorted(set(options) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown option(s) for {control_class.__name__}: {', '.join(unknown)}"
        )
    return control_class(**options)


def control_from_config(config: Mapping[str, Any]) -> TuneControl:
    """Build a control object from a mapping such as ``{"kind": "grid", "resolution": 5}``."""
    if "kind" not in config:
        raise ConfigurationError("Control configuration must name a strategy 'kind'")
    options = {key: value for key, value in config.items() if key != "kind"}
    return make_tune_control(config["kind"], **options)


def _resolve_kind(kind: StrategyKind | str) -> StrategyKind:
    try:
        return StrategyKind(kind)
    except ValueError:
        available = ", ".join(item.value for item in StrategyKind)
        raise UnknownStrategyError(f"Tuning algorithm '{kind}' does not exist. Available: {available}") from None


def _check_positive_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
