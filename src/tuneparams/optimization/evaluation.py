"""Evaluation function: turn one candidate configuration into recorded scores."""

from __future__ import annotations

import time
import traceback
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from threading import Event
from typing import Any, Callable, Iterable, Mapping, Sequence

from ..errors import ResampleResultError, TuningInterrupted
from ..logging_utils import get_logger
from ..measures.base import Measure
from ..measures.threshold import tune_threshold
from ..resampling.base import ResampleDescription
from ..resampling.result import ResampleFunction, ResampleResult
from .control import TuneControl
from .imputation import ImputationPolicy
from .opt_path import OptPath, TrialRecord
from .parameter_space import ParameterSpace

logger = get_logger(__name__)

Callback = Callable[[TrialRecord], None]


@dataclass(frozen=True)
class EvaluationOutcome:
    """Scores and extra fields of one evaluated configuration, plus its path record."""

    record: TrialRecord
    scores: Mapping[str, float]
    extra: Mapping[str, Any] = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return self.record.failed

    def objective(self, measure: Measure) -> float:
        """Score of ``measure`` oriented so that smaller is better."""
        return measure.to_minimize(self.scores[measure.id])


class TuneEvaluator:
    """
    Callable handed to strategies: ``evaluate(configuration) -> EvaluationOutcome``.

    Every call appends exactly one record to the optimisation path, whether the
    evaluation succeeded or failed. Failures never propagate: they are recorded and
    scored through the run's fixed imputation policy.
    """

    def __init__(
        self,
        learner: Any,
        task: Any,
        resampling: Any,
        measures: Sequence[Measure],
        par_set: ParameterSpace,
        control: TuneControl,
        opt_path: OptPath,
        resample_fn: ResampleFunction,
        policy: ImputationPolicy,
        *,
        show_info: bool = True,
        stop_event: Event | None = None,
        callbacks: Iterable[Callback] = (),
    ) -> None:
        self.learner = learner
        self.task = task
        self.resampling = resampling
        self.measures = tuple(measures)
        self.par_set = par_set
        self.control = control
        self.opt_path = opt_path
        self.resample_fn = resample_fn
        self.policy = policy
        self.show_info = show_info
        self.stop_event = stop_event
        self.callbacks = tuple(callbacks)
        self._started = time.perf_counter()

    @property
    def primary_measure(self) -> Measure:
        return self.measures[0]

    @property
    def n_evaluations(self) -> int:
        return len(self.opt_path)

    @property
    def elapsed(self) -> float:
        """Seconds since the evaluator was created."""
        return time.perf_counter() - self._started

    def __call__(self, configuration: Mapping[str, Any]) -> EvaluationOutcome:
        if self.stop_event is not None and self.stop_event.is_set():
            raise TuningInterrupted(opt_path=self.opt_path)

        validated = self.par_set.validate(configuration)
        hyperparameters = self.par_set.transform(validated)

        start = time.perf_counter()
        result, error_message, error_dump = self._resample(hyperparameters)
        exec_time = time.perf_counter() - start

        raw_scores = dict(result.aggregated_scores) if result is not None else {}
        extra: dict[str, Any] = {}
        if result is not None and error_message is None:
            extra, error_message = self._extract_extra(result, raw_scores)

        scores, imputed = self.policy.impute(raw_scores)
        if imputed and error_message is None:
            error_message = f"Non-finite score for measure(s): {', '.join(imputed)}"
        if error_message is not None and error_dump is not None and self.control.on_error_dump:
            extra["error_dump"] = error_dump

        record = self.opt_path.append(
            validated,
            scores,
            exec_time=exec_time,
            error_message=error_message,
            extra=extra if self.opt_path.include_extra else None,
        )
        self._log_trial(record)
        for callback in self.callbacks:
            callback(record)
        return EvaluationOutcome(record=record, scores=scores, extra=extra)

    def evaluate_many(self, configurations: Sequence[Mapping[str, Any]]) -> list[EvaluationOutcome]:
        """
        Evaluate an independent batch of configurations.

        Uses a thread pool when ``control.max_workers > 1``. Outcomes are returned in the
        order of ``configurations``; path indices follow completion order.
        """
        items = list(configurations)
        workers = min(self.control.max_workers, len(items))
        if workers <= 1:
            return [self(configuration) for configuration in items]
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(self, items))

    # Helpers -----------------------------------------------------------

    def _resample(self, hyperparameters: Mapping[str, Any]) -> tuple[ResampleResult | None, str | None, Any]:
        try:
            plan = self._plan()
            learner = self.learner.with_hyperparameters(dict(hyperparameters))
            raw = self.resample_fn(learner, self.task, plan, list(self.measures))
            result = ResampleResult.coerce(raw, self.measures)
        except ResampleResultError as exc:
            return None, str(exc), traceback.format_exc()
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            return None, message, traceback.format_exc()
        if result.failed:
            return result, result.error_message, result.error_dump
        return result, None, None

    def _plan(self) -> Any:
        if isinstance(self.resampling, ResampleDescription):
            return self.resampling.instantiate(self.task)
        return self.resampling

    def _extract_extra(
        self,
        result: ResampleResult,
        scores: dict[str, float],
    ) -> tuple[dict[str, Any], str | None]:
        extra: dict[str, Any] = {}
        if not self.control.tune_threshold:
            return extra, None
        if result.predictions is None:
            return extra, "Threshold tuning requested but the resample result carries no predictions"
        extra["predictions"] = result.predictions
        nsub = self.control.tune_threshold_args.get("nsub", 20)
        try:
            tuned = tune_threshold(result.predictions, self.primary_measure, nsub=nsub)
        except ValueError as exc:
            return extra, f"Threshold tuning failed: {exc}"
        scores[self.primary_measure.id] = tuned.performance
        extra["threshold"] = tuned.threshold
        return extra, None

    def _log_trial(self, record: TrialRecord) -> None:
        if not self.show_info:
            return
        params = ", ".join(f"{name}={value!r}" for name, value in record.parameters.items())
        logger.info("[Tune-x] %d: %s", record.index, params)
        scores = ", ".join(f"{name}={value:.6g}" for name, value in record.scores.items())
        if record.failed:
            logger.warning("[Tune-y] %d: %s; time: %.1f sec; error: %s", record.index, scores, record.exec_time, record.error_message)
        else:
            logger.info("[Tune-y] %d: %s; time: %.1f sec", record.index, scores, record.exec_time)
