"""Tests for measures and the decision threshold search."""

from __future__ import annotations

import pandas as pd
import pytest

from tuneparams import ConfigurationError, Measure, acc, mmce, mse, tune_threshold
from tuneparams.measures import check_measures


class TestMeasures:
    def test_direction(self) -> None:
        assert mmce.is_better(0.1, 0.2)
        assert acc.is_better(0.9, 0.8)
        assert acc.to_minimize(0.9) == -0.9
        assert not mmce.is_better(0.2, 0.2)

    def test_stock_scores(self) -> None:
        assert mmce.score([0, 1, 1, 0], [0, 1, 0, 0]) == 0.25
        assert acc.score([0, 1, 1, 0], [0, 1, 0, 0]) == 0.75
        assert mse.score([1.0, 2.0], [1.0, 4.0]) == 2.0

    def test_score_needs_function(self) -> None:
        with pytest.raises(ConfigurationError):
            Measure("custom").score([0], [0])

    def test_check_measures(self) -> None:
        assert check_measures(mmce) == [mmce]
        with pytest.raises(ConfigurationError, match="Duplicate"):
            check_measures([mmce, mmce])
        with pytest.raises(ConfigurationError):
            check_measures([])
        with pytest.raises(ConfigurationError):
            check_measures(["mmce"])


class TestTuneThreshold:
    def test_first_best_threshold_wins(self) -> None:
        predictions = pd.DataFrame({"truth": [0, 0, 1, 1], "prob": [0.12, 0.42, 0.33, 0.82]})
        result = tune_threshold(predictions, mmce, nsub=20)
        assert result.threshold == pytest.approx(0.15)
        assert result.performance == pytest.approx(0.25)

    def test_maximised_measure(self) -> None:
        predictions = {"truth": [0, 1], "prob": [0.3, 0.7]}
        result = tune_threshold(predictions, acc, nsub=4)
        assert result.threshold == pytest.approx(0.5)
        assert result.performance == 1.0

    def test_mismatched_lengths(self) -> None:
        with pytest.raises(ValueError, match="same length"):
            tune_threshold({"truth": [0, 1], "prob": [0.5]}, mmce)

    def test_missing_field(self) -> None:
        with pytest.raises(ValueError, match="prob"):
            tune_threshold({"truth": [0, 1]}, mmce)

    def test_invalid_nsub(self) -> None:
        with pytest.raises(ConfigurationError):
            tune_threshold({"truth": [0], "prob": [0.5]}, mmce, nsub=0)

    def test_lowest_threshold_kept_when_every_threshold_ties(self) -> None:
        result = tune_threshold({"truth": [1, 1], "prob": [1.0, 1.0]}, acc, nsub=4)
        assert result.threshold == 0.0
        assert result.performance == 1.0
