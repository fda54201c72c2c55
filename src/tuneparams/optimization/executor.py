"""Orchestrator responsible for running tuning searches end-to-end."""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from pathlib import Path
from threading import Event
from typing import Any, Callable, Iterable, Sequence

from ..errors import ConfigurationError, StrategyError, TuningError, TuningInterrupted
from ..learners.base import check_learner
from ..logging_utils import get_logger, run_log
from ..measures.base import Measure, check_measures
from ..resampling.base import ResampleDescription, ResamplePlan
from ..resampling.result import ResampleFunction
from .control import TuneControl
from .evaluation import TuneEvaluator
from .imputation import ImputationPolicy
from .opt_path import OptPath, TrialRecord
from .parameter_space import ParameterSpace
from .result import TuneResult
from .strategies import StrategyOutcome, strategy_for

logger = get_logger(__name__)

Callback = Callable[[TrialRecord], None]


@dataclass
class TuningExecutor:
    """
    Drive a tuning run: validate inputs, prepare resampling, run the strategy, package the result.

    Attributes:
        show_info: Log progress messages at INFO level.
        callbacks: Invoked with every record appended to the optimisation path.
        stop_event: When set, the run stops before the next trial and returns what it has.
        run_log: Optional file receiving the run's log messages.
    """

    show_info: bool = True
    callbacks: Iterable[Callback] = field(default_factory=tuple)
    stop_event: Event | None = None
    run_log: str | Path | None = None

    def run(
        self,
        learner: Any,
        task: Any,
        resampling: ResampleDescription | ResamplePlan,
        measures: Measure | Sequence[Measure],
        par_set: ParameterSpace,
        control: TuneControl,
        resample_fn: ResampleFunction,
    ) -> TuneResult:
        """Execute the tuning run described by the arguments."""
        with run_log(self.run_log):
            return self._run(learner, task, resampling, measures, par_set, control, resample_fn)

    def _run(
        self,
        learner: Any,
        task: Any,
        resampling: ResampleDescription | ResamplePlan,
        measures: Measure | Sequence[Measure],
        par_set: ParameterSpace,
        control: TuneControl,
        resample_fn: ResampleFunction,
    ) -> TuneResult:
        learner = check_learner(learner)
        if task is None:
            raise ConfigurationError("task must not be None")
        measure_list = check_measures(measures, task)
        if not isinstance(par_set, ParameterSpace) or len(par_set) == 0:
            raise ConfigurationError("par_set must be a non-empty ParameterSpace")
        if not isinstance(control, TuneControl):
            raise ConfigurationError(f"control must be a TuneControl, got {type(control).__name__}")
        check_resample_fn(resample_fn)
        if not isinstance(resampling, (ResampleDescription, ResamplePlan)):
            raise ConfigurationError("Argument resampling must be a ResampleDescription or ResamplePlan")

        strategy_class = strategy_for(control)
        check_tuner_parset(learner, par_set, measure_list, control)
        strategy_class.check_parameter_space(par_set, control)

        if isinstance(resampling, ResampleDescription) and control.same_resampling_instance:
            resampling = resampling.instantiate(task)

        policy = ImputationPolicy.resolve(measure_list, control.impute_val)
        control = control.with_impute_values(policy.values)
        opt_path = OptPath(par_set, measure_list, include_extra=control.need_extra)

        if self.show_info:
            logger.info("[Tune] Started tuning learner %s for parameter set:", learner.id)
            for definition in par_set:
                logger.info("  %s", describe_parameter(definition))
            logger.info("With control class: %s", type(control).__name__)
            logger.info("Imputation value: %s", ", ".join(f"{key}={value:g}" for key, value in policy.values.items()))

        evaluate = TuneEvaluator(
            learner,
            task,
            resampling,
            measure_list,
            par_set,
            control,
            opt_path,
            resample_fn,
            policy,
            show_info=self.show_info,
            stop_event=self.stop_event,
            callbacks=self.callbacks,
        )
        strategy = strategy_class()
        diagnostics: dict[str, Any] = {"aborted": False}
        outcome: StrategyOutcome | None
        try:
            outcome = strategy.search(learner, task, resampling, measure_list, par_set, control, opt_path, evaluate)
        except TuningInterrupted:
            logger.warning("[Tune] Interrupted after %d trial(s)", len(opt_path))
            diagnostics["aborted"] = True
            outcome = _partial_outcome(strategy, opt_path, measure_list)
        except StrategyError as exc:
            if len(opt_path) == 0:
                raise
            logger.error("[Tune] Strategy %s failed: %s", strategy_class.__name__, exc)
            diagnostics["strategy_error"] = str(exc)
            outcome = strategy.best_outcome(opt_path, measure_list)

        if outcome is not None:
            _check_outcome(outcome, opt_path)
            diagnostics = {**outcome.diagnostics, **diagnostics}
        result = self._package(learner.id, par_set, control, opt_path, outcome, diagnostics)
        self._report(result, opt_path)
        return result

    # Result helpers ----------------------------------------------------

    def _package(
        self,
        learner_id: str,
        par_set: ParameterSpace,
        control: TuneControl,
        opt_path: OptPath,
        outcome: StrategyOutcome | None,
        diagnostics: dict[str, Any],
    ) -> TuneResult:
        failed = opt_path.failed_records()
        diagnostics["n_failed"] = len(failed)
        if outcome is None:
            return TuneResult(
                learner_id=learner_id,
                x=None,
                x_transformed=None,
                y={},
                opt_path=opt_path,
                control=control,
                diagnostics=diagnostics,
            )
        record = opt_path.get(outcome.index)
        return TuneResult(
            learner_id=learner_id,
            x=record.parameters,
            x_transformed=par_set.transform(record.parameters),
            y=record.scores,
            opt_path=opt_path,
            control=control,
            best_index=record.index,
            threshold=record.extra.get("threshold"),
            diagnostics=diagnostics,
        )

    def _report(self, result: TuneResult, opt_path: OptPath) -> None:
        if not self.show_info:
            return
        failed = opt_path.failed_records()
        if failed:
            logger.warning(
                "[Tune] %d of %d trial(s) failed and were imputed: %s",
                len(failed),
                len(opt_path),
                "; ".join(
                    f"#{record.index} "
                    + ", ".join(f"{name}={value:g}" for name, value in record.scores.items())
                    for record in failed
                ),
            )
        if result.x is None:
            logger.info("[Tune] Result: no trial evaluated")
            return
        params = ", ".join(f"{name}={value!r}" for name, value in result.x.items())
        scores = ", ".join(f"{name}={value:.6g}" for name, value in result.y.items())
        logger.info("[Tune] Result: %s : %s", params, scores)


def tune_params(
    learner: Any,
    task: Any,
    resampling: ResampleDescription | ResamplePlan,
    measures: Measure | Sequence[Measure],
    par_set: ParameterSpace,
    control: TuneControl,
    resample_fn: ResampleFunction,
    *,
    show_info: bool = True,
    stop_event: Event | None = None,
    callbacks: Iterable[Callback] = (),
    run_log: str | Path | None = None,
) -> TuneResult:
    """
    Optimise the hyperparameters of ``learner``.

    Args:
        learner: Learner exposing ``id`` and ``with_hyperparameters(params)``.
        task: Task handed unchanged to the resample collaborator.
        resampling: Resampling description or an already instantiated plan. A description
            is instantiated once when ``control.same_resampling_instance`` is true, so
            every configuration is evaluated on the same splits.
        measures: One measure or a sequence; the first one decides the winner.
        par_set: Space of tunable parameters.
        control: Control object; its kind selects the search strategy.
        resample_fn: ``resample_fn(learner, task, plan, measures)`` returning an object
            with ``aggregated_scores`` (and optionally ``predictions``, ``error_message``,
            ``error_dump``).
        show_info: Log progress messages.
        stop_event: Set it to stop the run between trials; the partial result is returned.
        callbacks: Called with each appended :class:`TrialRecord`.
        run_log: Optional path of a file receiving the run's log messages.

    Returns:
        TuneResult with the winning configuration and the full optimisation path.

    Raises:
        ConfigurationError: When any input fails validation. Raised before any trial runs.
    """
    executor = TuningExecutor(show_info=show_info, callbacks=callbacks, stop_event=stop_event, run_log=run_log)
    return executor.run(learner, task, resampling, measures, par_set, control, resample_fn)


def check_resample_fn(resample_fn: Any) -> None:
    """Ensure ``resample_fn`` can be called as ``resample_fn(learner, task, plan, measures)``."""
    if not callable(resample_fn):
        raise ConfigurationError("resample_fn must be callable")
    try:
        signature = inspect.signature(resample_fn)
    except (TypeError, ValueError):
        return
    try:
        signature.bind(None, None, None, None)
    except TypeError as exc:
        raise ConfigurationError(
            f"resample_fn must accept (learner, task, plan, measures): {exc}"
        ) from exc


def check_tuner_parset(learner: Any, par_set: ParameterSpace, measures: Sequence[Measure], control: TuneControl) -> None:
    """Cross-check learner, parameter space, measures and control before any trial runs."""
    known = getattr(learner, "param_names", None)
    if known is not None:
        unknown = [name for name in par_set.names if name not in set(known)]
        if unknown:
            raise ConfigurationError(
                f"Parameter(s) not available for learner '{learner.id}': {', '.join(unknown)}"
            )
    if control.tune_threshold:
        if getattr(learner, "predict_type", None) != "prob":
            raise ConfigurationError("Threshold tuning requires a learner with predict_type 'prob'")
        if measures[0].fun is None:
            raise ConfigurationError(
                f"Threshold tuning requires the primary measure '{measures[0].id}' to provide a scoring function"
            )


def describe_parameter(definition: Any) -> str:
    if definition.is_discrete():
        domain = "{" + ", ".join(map(repr, definition.values)) + "}"
    else:
        domain = f"[{definition.lower_bound}, {definition.upper_bound}]"
    text = f"{definition.name} ({definition.type}) {domain}"
    if definition.transform is not None:
        text += " with transform"
    if definition.requires is not None:
        text += f" requires {definition.requires.to_config()}"
    return text


def _partial_outcome(strategy: Any, opt_path: OptPath, measures: Sequence[Measure]) -> StrategyOutcome | None:
    if len(opt_path) == 0:
        return None
    return strategy.best_outcome(opt_path, measures)


def _check_outcome(outcome: StrategyOutcome, opt_path: OptPath) -> None:
    try:
        record = opt_path.get(outcome.index)
    except IndexError as exc:
        raise TuningError(f"Strategy returned trial {outcome.index}, which is not in the optimisation path") from exc
    if dict(record.parameters) != dict(outcome.configuration) or dict(record.scores) != dict(outcome.scores):
        raise TuningError(
            f"Strategy result does not match trial {outcome.index} of the optimisation path"
        )
