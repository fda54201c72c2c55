"""Tests for resampling plans and the resample result contract."""

from __future__ import annotations

import math
from types import SimpleNamespace

import numpy as np
import pytest

from tuneparams import ConfigurationError, CrossValidation, Holdout, ResampleResult, ResampleResultError, mmce


class TestDescriptions:
    def test_holdout_partitions_the_task(self, task) -> None:
        plan = Holdout(seed=3).instantiate(task)
        assert plan.iterations == 1
        assert len(plan.train_indices[0]) == 20
        joined = np.concatenate([plan.train_indices[0], plan.test_indices[0]])
        assert sorted(joined.tolist()) == list(range(30))

    def test_seeded_holdout_is_reproducible(self, task) -> None:
        first = Holdout(seed=5).instantiate(task)
        second = Holdout(seed=5).instantiate(task)
        assert first is not second
        assert np.array_equal(first.test_indices[0], second.test_indices[0])

    def test_cross_validation_folds(self, task) -> None:
        plan = CrossValidation(folds=3, seed=0).instantiate(task)
        assert plan.iterations == 3
        test_union = np.concatenate(plan.test_indices)
        assert sorted(test_union.tolist()) == list(range(30))

    def test_invalid_descriptions(self, task) -> None:
        with pytest.raises(ConfigurationError):
            Holdout(split=1.0)
        with pytest.raises(ConfigurationError):
            CrossValidation(folds=1)
        with pytest.raises(ConfigurationError):
            CrossValidation(folds=50).instantiate(task)


class TestResampleResult:
    def test_coerce_mapping(self) -> None:
        result = ResampleResult.coerce({"aggregated_scores": {"mmce": 0.2, "extra": 1.0}}, [mmce])
        assert result.aggregated_scores == {"mmce": 0.2}
        assert not result.failed

    def test_coerce_attributes(self) -> None:
        raw = SimpleNamespace(aggregated_scores={"mmce": None}, error_message="fold 2 failed")
        result = ResampleResult.coerce(raw, [mmce])
        assert math.isnan(result.aggregated_scores["mmce"])
        assert result.failed
        assert result.error_message == "fold 2 failed"

    def test_coerce_passes_instances(self) -> None:
        result = ResampleResult.coerce(ResampleResult({"mmce": 0.1}, predictions=[1]), [mmce])
        assert result.predictions == [1]

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            42,
            {"scores": {"mmce": 0.1}},
            {"aggregated_scores": {"acc": 0.9}},
            {"aggregated_scores": {"mmce": "bad"}},
            {"aggregated_scores": 0.1},
        ],
    )
    def test_contract_violations(self, raw) -> None:
        with pytest.raises(ResampleResultError):
            ResampleResult.coerce(raw, [mmce])
