"""End-to-end tests of the tuning orchestrator."""

from __future__ import annotations

import logging
from threading import Event

import pandas as pd
import pytest

from conftest import CountingDescription, RecordingResample, StubLearner, failing_resample, quadratic
from tuneparams import (
    ConfigurationError,
    Holdout,
    Measure,
    ParameterSpace,
    StrategyError,
    TuningError,
    UnknownStrategyError,
    control_from_config,
    make_tune_control,
    mmce,
    mse,
    numeric_param,
    tune_params,
)
from tuneparams.optimization.control import StrategyKind, TuneControl
from tuneparams.optimization.parameter_space import TRANSFORMS
from tuneparams.optimization.strategies import RandomSearchStrategy, StrategyOutcome, StrategyRegistry


def run(learner, task, measures, space, control, resample_fn, resampling=None, **kwargs):
    return tune_params(
        learner,
        task,
        resampling if resampling is not None else Holdout(seed=1),
        measures,
        space,
        control,
        resample_fn,
        show_info=kwargs.pop("show_info", False),
        **kwargs,
    )


class TestResultContract:
    def test_exp2_grid_example(self, learner, task, loss) -> None:
        space = ParameterSpace.from_definitions([numeric_param("C", -12, 12, transform=TRANSFORMS["exp2"])])
        resample = RecordingResample(lambda params: abs(params["C"] - 100))

        result = run(learner, task, [loss], space, make_tune_control("grid", resolution=2), resample)

        assert len(result.opt_path) == 2
        assert [record.parameters["C"] for record in result.opt_path] == [-12.0, 12.0]
        assert resample.params == [{"C": 2.0**-12}, {"C": 2.0**12}]
        # 2^-12 lies ~100 away from 100, 2^12 lies 3996 away
        assert result.x == {"C": -12.0}
        assert result.x_transformed == {"C": 2.0**-12}
        assert result.y["loss"] == pytest.approx(100 - 2.0**-12)

    def test_winner_is_a_recorded_trial(self, learner, task, loss, numeric_space) -> None:
        result = run(
            learner,
            task,
            [loss],
            numeric_space,
            make_tune_control("random", max_iterations=15, random_seed=4),
            RecordingResample(quadratic),
        )
        best = result.best_record
        assert best is not None
        assert dict(best.parameters) == dict(result.x)
        assert dict(best.scores) == dict(result.y)
        assert all(result.y["loss"] <= record.scores["loss"] for record in result.opt_path)

    def test_path_length_matches_resample_calls(self, learner, task, loss, numeric_space) -> None:
        resample = RecordingResample(quadratic)
        result = run(learner, task, [loss], numeric_space, make_tune_control("grid", resolution=3), resample)
        assert len(result.opt_path) == len(resample.params) == 9
        assert [record.index for record in result.opt_path] == list(range(1, 10))

    def test_inactive_parameters_never_reach_the_learner(self, learner, task, loss, dependent_space) -> None:
        resample = RecordingResample(lambda params: params.get("B", 0.5))
        result = run(learner, task, [loss], dependent_space, make_tune_control("grid", resolution=2), resample)

        assert len(result.opt_path) == 3
        for params in resample.params:
            if params["A"] == "y":
                assert "B" not in params
        frame = result.get_opt_path()
        assert isinstance(frame, pd.DataFrame)
        assert frame.loc[frame["A"] == "y", "B"].isna().all()

    def test_secondary_measures_are_reported_only(self, learner, task, loss) -> None:
        space = ParameterSpace.from_definitions([numeric_param("x", 0, 1)])
        secondary = Measure("size", minimize=True, worst=10.0)

        def resample(learner, task, plan, measures):
            x = learner.params["x"]
            return {"aggregated_scores": {"loss": x, "size": 1 - x}}

        result = run(learner, task, [loss, secondary], space, make_tune_control("grid", resolution=3), resample)
        assert result.x == {"x": 0.0}
        assert result.y == {"loss": 0.0, "size": 1.0}

    def test_result_is_immutable(self, learner, task, loss, numeric_space) -> None:
        result = run(learner, task, [loss], numeric_space, make_tune_control("grid", resolution=2), RecordingResample(quadratic))
        with pytest.raises(TypeError):
            result.x["x"] = 0.0
        assert "Tune result: learner stub.learner" in str(result)


class TestFailures:
    def test_always_failing_collaborator(self, learner, task, loss, numeric_space) -> None:
        result = run(learner, task, [loss], numeric_space, make_tune_control("grid", resolution=2), failing_resample)

        assert len(result.opt_path) == 4
        assert all(record.scores["loss"] == 1000.0 for record in result.opt_path)
        assert all(record.error_message == "training diverged" for record in result.opt_path)
        assert result.best_index == 1
        assert result.n_failed == 4
        assert result.diagnostics["n_failed"] == 4
        assert result.control.impute_val == {"loss": 1000.0}

    def test_impute_override(self, learner, task, loss, numeric_space) -> None:
        result = run(
            learner,
            task,
            [loss],
            numeric_space,
            make_tune_control("grid", resolution=2, impute_val=77.0),
            failing_resample,
        )
        assert {record.scores["loss"] for record in result.opt_path} == {77.0}

    def test_error_dump_on_request(self, learner, task, loss, numeric_space) -> None:
        result = run(
            learner,
            task,
            [loss],
            numeric_space,
            make_tune_control("grid", resolution=2, on_error_dump=True),
            failing_resample,
        )
        assert all("Traceback" in record.extra["error_dump"] for record in result.opt_path)
        assert "error_dump" in result.get_opt_path().columns


class TestResampling:
    def test_shared_plan_for_every_trial(self, learner, task, loss, numeric_space) -> None:
        description = CountingDescription()
        resample = RecordingResample(quadratic)
        run(learner, task, [loss], numeric_space, make_tune_control("grid", resolution=2), resample, description)

        assert description.instantiations == 1
        assert all(plan is resample.plans[0] for plan in resample.plans)

    def test_fresh_plan_per_trial(self, learner, task, loss, numeric_space) -> None:
        description = CountingDescription()
        resample = RecordingResample(quadratic)
        control = make_tune_control("grid", resolution=2, same_resampling_instance=False)
        run(learner, task, [loss], numeric_space, control, resample, description)

        assert description.instantiations == 4
        assert len({id(plan) for plan in resample.plans}) == 4

    def test_instantiated_plan_is_used_as_is(self, learner, task, loss, numeric_space, plan) -> None:
        resample = RecordingResample(quadratic)
        run(learner, task, [loss], numeric_space, make_tune_control("grid", resolution=2), resample, plan)
        assert all(used is plan for used in resample.plans)


class TestDeterminism:
    def test_seeded_random_search_is_reproducible(self, learner, task, loss, numeric_space) -> None:
        def trials():
            result = run(
                learner,
                task,
                [loss],
                numeric_space,
                make_tune_control("random", max_iterations=8, random_seed=11),
                RecordingResample(quadratic),
            )
            return [(dict(record.parameters), dict(record.scores)) for record in result.opt_path]

        assert trials() == trials()


class TestValidation:
    def test_unknown_kind(self) -> None:
        with pytest.raises(UnknownStrategyError):
            make_tune_control("hyperband")

    def test_control_without_kind(self, learner, task, loss, numeric_space) -> None:
        resample = RecordingResample(quadratic)
        with pytest.raises(UnknownStrategyError):
            run(learner, task, [loss], numeric_space, TuneControl(), resample)
        assert resample.params == []

    def test_unknown_control_option(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown option"):
            make_tune_control("grid", iterations=5)

    def test_control_from_config(self) -> None:
        control = control_from_config({"kind": "random", "max_iterations": 5, "random_seed": 3})
        assert control.kind is StrategyKind.RANDOM
        assert control.max_iterations == 5
        with pytest.raises(ConfigurationError):
            control_from_config({"max_iterations": 5})

    def test_bad_resample_signature(self, learner, task, loss, numeric_space) -> None:
        with pytest.raises(ConfigurationError, match="resample_fn"):
            run(learner, task, [loss], numeric_space, make_tune_control("grid"), lambda learner, task: None)

    def test_bad_resampling(self, learner, task, loss, numeric_space) -> None:
        with pytest.raises(ConfigurationError, match="resampling"):
            run(learner, task, [loss], numeric_space, make_tune_control("grid"), RecordingResample(quadratic), "cv")

    def test_parameter_unknown_to_learner(self, task, loss, numeric_space) -> None:
        learner = StubLearner(param_names=("x",))
        with pytest.raises(ConfigurationError, match="not available"):
            run(learner, task, [loss], numeric_space, make_tune_control("grid"), RecordingResample(quadratic))

    def test_threshold_tuning_needs_probabilities(self, learner, task, numeric_space) -> None:
        with pytest.raises(ConfigurationError, match="predict_type"):
            run(
                learner,
                task,
                [mmce],
                numeric_space,
                make_tune_control("grid", tune_threshold=True),
                RecordingResample(quadratic),
            )

    def test_measure_task_type_mismatch(self, learner, task, numeric_space) -> None:
        with pytest.raises(ConfigurationError, match="task type"):
            run(learner, task, [mse], numeric_space, make_tune_control("grid"), RecordingResample(quadratic))

    def test_grid_larger_than_budget(self, learner, task, loss, numeric_space) -> None:
        with pytest.raises(ConfigurationError, match="exceeds the budget"):
            run(learner, task, [loss], numeric_space, make_tune_control("grid", resolution=3, budget=4), RecordingResample(quadratic))


class TestThresholdRun:
    def test_best_threshold_is_reported(self, task) -> None:
        space = ParameterSpace.from_definitions([numeric_param("x", 0, 1)])
        predictions = pd.DataFrame({"truth": [0, 0, 1, 1], "prob": [0.12, 0.42, 0.33, 0.82]})

        def resample(learner, task, plan, measures):
            return {"aggregated_scores": {"mmce": 0.5}, "predictions": predictions}

        result = run(
            StubLearner(predict_type="prob"),
            task,
            [mmce],
            space,
            make_tune_control("grid", resolution=2, tune_threshold=True),
            resample,
        )
        assert result.threshold == pytest.approx(0.15)
        assert result.y["mmce"] == pytest.approx(0.25)


class TestInterruption:
    def test_stop_between_trials_returns_partial_result(self, learner, task, loss, numeric_space) -> None:
        stop = Event()

        def stop_after_two(record):
            if record.index == 2:
                stop.set()

        result = run(
            learner,
            task,
            [loss],
            numeric_space,
            make_tune_control("random", max_iterations=10, random_seed=2),
            RecordingResample(quadratic),
            stop_event=stop,
            callbacks=[stop_after_two],
        )
        assert len(result.opt_path) == 2
        assert result.diagnostics["aborted"] is True
        assert result.best_index in (1, 2)

    def test_stop_before_any_trial(self, learner, task, loss, numeric_space) -> None:
        stop = Event()
        stop.set()
        result = run(
            learner,
            task,
            [loss],
            numeric_space,
            make_tune_control("random", max_iterations=10),
            RecordingResample(quadratic),
            stop_event=stop,
        )
        assert result.x is None
        assert result.best_index is None
        assert len(result.opt_path) == 0


class FailingAfterOneTrial(RandomSearchStrategy):
    def search(self, learner, task, resampling, measures, par_set, control, opt_path, evaluate):
        evaluate({"x": 1.0, "y": -2.0})
        raise StrategyError("surrogate did not converge")


class FailingImmediately(RandomSearchStrategy):
    def search(self, learner, task, resampling, measures, par_set, control, opt_path, evaluate):
        raise StrategyError("surrogate did not converge")


class ReturningForeignTrial(RandomSearchStrategy):
    def search(self, learner, task, resampling, measures, par_set, control, opt_path, evaluate):
        evaluate({"x": 1.0, "y": -2.0})
        return StrategyOutcome(configuration={"x": 0.0, "y": 0.0}, scores={"loss": 0.0}, index=1)


class TestStrategyContract:
    @pytest.fixture
    def swap_random(self, monkeypatch):
        def swap(strategy_class):
            monkeypatch.setitem(StrategyRegistry._strategies, StrategyKind.RANDOM, strategy_class)

        return swap

    def test_strategy_error_degrades_to_best_recorded(self, swap_random, learner, task, loss, numeric_space) -> None:
        swap_random(FailingAfterOneTrial)
        result = run(learner, task, [loss], numeric_space, make_tune_control("random"), RecordingResample(quadratic))
        assert result.x == {"x": 1.0, "y": -2.0}
        assert result.diagnostics["strategy_error"] == "surrogate did not converge"

    def test_strategy_error_without_trials_propagates(self, swap_random, learner, task, loss, numeric_space) -> None:
        swap_random(FailingImmediately)
        with pytest.raises(StrategyError):
            run(learner, task, [loss], numeric_space, make_tune_control("random"), RecordingResample(quadratic))

    def test_winner_must_come_from_the_path(self, swap_random, learner, task, loss, numeric_space) -> None:
        swap_random(ReturningForeignTrial)
        with pytest.raises(TuningError, match="does not match"):
            run(learner, task, [loss], numeric_space, make_tune_control("random"), RecordingResample(quadratic))


class TestLogging:
    def test_progress_messages(self, caplog, learner, task, loss, numeric_space) -> None:
        caplog.set_level(logging.INFO, logger="tuneparams")
        run(
            learner,
            task,
            [loss],
            numeric_space,
            make_tune_control("grid", resolution=2),
            RecordingResample(quadratic),
            show_info=True,
        )
        messages = [record.getMessage() for record in caplog.records]
        assert any(message.startswith("[Tune] Started tuning learner stub.learner") for message in messages)
        assert any(message.startswith("[Tune-x] 4:") for message in messages)
        assert any(message.startswith("[Tune] Result:") for message in messages)

    def test_silent_run(self, caplog, learner, task, loss, numeric_space) -> None:
        caplog.set_level(logging.INFO, logger="tuneparams")
        run(learner, task, [loss], numeric_space, make_tune_control("grid", resolution=2), RecordingResample(quadratic))
        assert not [record for record in caplog.records if record.name.startswith("tuneparams")]

    def test_run_log_file(self, tmp_path, learner, task, loss, numeric_space) -> None:
        log_path = tmp_path / "logs" / "run.log"
        run(
            learner,
            task,
            [loss],
            numeric_space,
            make_tune_control("grid", resolution=2),
            RecordingResample(quadratic),
            show_info=True,
            run_log=log_path,
        )
        content = log_path.read_text(encoding="utf-8")
        assert "[Tune] Started tuning learner stub.learner" in content
        assert "[Tune] Result:" in content
