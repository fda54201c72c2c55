"""Tests for the parameter dependency predicates."""

from __future__ import annotations

import pytest

from tuneparams import ConfigurationError
from tuneparams.optimization.conditions import AllOf, AnyOf, Compare, Equals, In, Not, condition_from_config


class TestLeafConditions:
    def test_equals(self) -> None:
        condition = Equals("kernel", "rbfdot")
        assert condition.evaluate({"kernel": "rbfdot"})
        assert not condition.evaluate({"kernel": "polydot"})

    def test_in(self) -> None:
        condition = In("kernel", ("polydot", "rbfdot"))
        assert condition.evaluate({"kernel": "polydot"})
        assert not condition.evaluate({"kernel": "vanilladot"})

    def test_compare(self) -> None:
        assert Compare("C", ">=", 0).evaluate({"C": 0})
        assert not Compare("C", "<", 0).evaluate({"C": 1.5})

    def test_missing_reference_is_false(self) -> None:
        assert not Equals("kernel", "rbfdot").evaluate({})
        assert not In("kernel", ("rbfdot",)).evaluate({})
        assert not Compare("C", ">", 0).evaluate({})

    def test_incomparable_values_are_false(self) -> None:
        assert not Compare("kernel", ">", 0).evaluate({"kernel": "rbfdot"})

    def test_unknown_operator_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="Unsupported comparison"):
            Compare("C", "=~", 0)

    def test_empty_membership_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            In("kernel", ())


class TestCompositeConditions:
    def test_all_any_not(self) -> None:
        values = {"kernel": "rbfdot", "C": 2}
        assert AllOf(Equals("kernel", "rbfdot"), Compare("C", ">", 1)).evaluate(values)
        assert not AllOf(Equals("kernel", "rbfdot"), Compare("C", ">", 5)).evaluate(values)
        assert AnyOf(Equals("kernel", "polydot"), Compare("C", ">", 1)).evaluate(values)
        assert Not(Equals("kernel", "polydot")).evaluate(values)

    def test_references_are_collected(self) -> None:
        condition = AnyOf(Equals("a", 1), Not(AllOf(Compare("b", "<", 0), In("c", (1, 2)))))
        assert condition.references() == frozenset({"a", "b", "c"})

    def test_composites_need_members(self) -> None:
        with pytest.raises(ConfigurationError):
            AllOf()
        with pytest.raises(ConfigurationError):
            AnyOf()


class TestConditionConfig:
    def test_parse_nested(self) -> None:
        condition = condition_from_config(
            {
                "all": [
                    {"param": "kernel", "in": ["polydot", "rbfdot"]},
                    {"not": {"param": "C", "op": "<", "value": 0}},
                ]
            }
        )
        assert condition.evaluate({"kernel": "rbfdot", "C": 1})
        assert not condition.evaluate({"kernel": "rbfdot", "C": -1})

    def test_config_round_trip(self) -> None:
        condition = AnyOf(Equals("kernel", "rbfdot"), Compare("C", ">=", 0))
        assert condition_from_config(condition.to_config()) == condition

    def test_condition_instances_pass_through(self) -> None:
        condition = Equals("a", 1)
        assert condition_from_config(condition) is condition

    @pytest.mark.parametrize(
        "config",
        [
            {"eq": 1},
            {"param": "a"},
            {"param": "a", "op": ">"},
            ["param", "a"],
        ],
    )
    def test_malformed_config_rejected(self, config) -> None:
        with pytest.raises(ConfigurationError):
            condition_from_config(config)
