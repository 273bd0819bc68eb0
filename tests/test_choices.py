"""
Choice rule evaluation tests
"""
from datetime import datetime, timedelta, timezone

import pytest

from asl_runtime.core import ChoiceEvaluator
from asl_runtime.core.choices import compile_mask, parse_timestamp, string_matches


@pytest.fixture
def matches(parser):
    """Evaluate one raw rule against an input"""
    def _matches(rule, input):
        state = parser.parse_state("Check", {
            "Type": "Choice",
            "Choices": [{**rule, "Next": "Matched"}],
        })
        return ChoiceEvaluator().evaluate(state.choices, input) == "Matched"
    return _matches


class TestBooleanOperators:

    def test_and(self, matches):
        rule = {"And": [
            {"StringEquals": "yes", "Variable": "$.value"},
            {"IsPresent": True, "Variable": "$.value"},
        ]}

        assert matches(rule, {"value": "yes"}) is True
        assert matches(rule, {"value": "no"}) is False

    def test_or(self, matches):
        rule = {"Or": [
            {"NumericEquals": 1, "Variable": "$.n"},
            {"NumericEquals": 2, "Variable": "$.n"},
        ]}

        assert matches(rule, {"n": 2}) is True
        assert matches(rule, {"n": 3}) is False

    def test_not(self, matches):
        rule = {"Not": {"StringEquals": "blocked", "Variable": "$.status"}}

        assert matches(rule, {"status": "open"}) is True
        assert matches(rule, {"status": "blocked"}) is False

    def test_rule_without_operator_never_matches(self, matches):
        assert matches({"Variable": "$.a"}, {"a": 1}) is False


class TestComparisons:

    @pytest.mark.parametrize("value, expected", [("A", True), ("B", False), ("C", False)])
    def test_string_less_than(self, matches, value, expected):
        rule = {"StringLessThan": "B", "Variable": "$.value"}

        assert matches(rule, {"value": value}) is expected

    @pytest.mark.parametrize("operator, expected", [
        ("NumericEquals", False),
        ("NumericLessThan", True),
        ("NumericGreaterThan", False),
        ("NumericLessThanEquals", True),
        ("NumericGreaterThanEquals", False),
    ])
    def test_numeric_operators(self, matches, operator, expected):
        assert matches({operator: 10, "Variable": "$.n"}, {"n": 9.5}) is expected

    def test_path_operand(self, matches):
        rule = {"NumericGreaterThanPath": "$.limit", "Variable": "$.n"}

        assert matches(rule, {"n": 5, "limit": 3}) is True
        assert matches(rule, {"n": 5, "limit": 8}) is False

    def test_missing_path_operand_is_false(self, matches):
        assert matches({"StringEqualsPath": "$.other", "Variable": "$.s"}, {"s": "x"}) is False

    def test_timestamps_compare_as_instants(self, matches):
        rule = {"TimestampEquals": "2022-01-01T00:00:00Z", "Variable": "$.at"}

        assert matches(rule, {"at": "2022-01-01T01:00:00+01:00"}) is True
        assert matches(rule, {"at": "2022-01-01T00:00:01Z"}) is False

    def test_timestamp_less_than(self, matches):
        rule = {"TimestampLessThan": "2022-01-01T00:00:00Z", "Variable": "$.at"}

        assert matches(rule, {"at": "2021-12-31T23:59:59.999Z"}) is True

    @pytest.mark.parametrize("rule, input", [
        ({"NumericEquals": 1, "Variable": "$.v"}, {"v": "1"}),
        ({"StringEquals": "1", "Variable": "$.v"}, {"v": 1}),
        ({"BooleanEquals": True, "Variable": "$.v"}, {"v": 1}),
        ({"NumericEquals": 1, "Variable": "$.v"}, {"v": True}),
        ({"TimestampEquals": "2022-01-01T00:00:00Z", "Variable": "$.v"}, {"v": "yesterday"}),
        ({"StringEquals": "x", "Variable": "$.missing"}, {}),
    ])
    def test_type_mismatch_is_false(self, matches, rule, input):
        assert matches(rule, input) is False

    def test_boolean_equals(self, matches):
        assert matches({"BooleanEquals": False, "Variable": "$.flag"}, {"flag": False}) is True

    def test_context_variable(self, parser):
        class Context:
            def to_dict(self):
                return {"Execution": {"Name": "nightly"}}

        state = parser.parse_state("Check", {
            "Type": "Choice",
            "Choices": [{"Variable": "$$.Execution.Name", "StringEquals": "nightly", "Next": "Yes"}],
        })

        assert ChoiceEvaluator(Context()).evaluate(state.choices, {}) == "Yes"


class TestTypeTests:

    @pytest.mark.parametrize("operator, value", [
        ("IsNull", None),
        ("IsNumeric", 3),
        ("IsString", "x"),
        ("IsBoolean", False),
        ("IsTimestamp", "2022-04-14T01:01:00Z"),
    ])
    def test_positive_and_inverted(self, matches, operator, value):
        assert matches({operator: True, "Variable": "$.v"}, {"v": value}) is True
        assert matches({operator: False, "Variable": "$.v"}, {"v": value}) is False

    def test_is_present(self, matches):
        assert matches({"IsPresent": True, "Variable": "$.v"}, {"v": None}) is True
        assert matches({"IsPresent": False, "Variable": "$.v"}, {}) is True
        assert matches({"IsPresent": True, "Variable": "$.v"}, {}) is False

    def test_boolean_is_not_numeric(self, matches):
        assert matches({"IsNumeric": True, "Variable": "$.v"}, {"v": True}) is False


class TestStringMatches:

    @pytest.mark.parametrize("value, expected", [
        ("app.log", True),
        (".log", True),
        ("app.log.gz", False),
        ("app.txt", False),
    ])
    def test_wildcard(self, value, expected):
        assert string_matches(value, "*.log") is expected

    def test_escaped_star_is_literal(self):
        assert string_matches("a*b", r"a\*b") is True
        assert string_matches("axb", r"a\*b") is False

    def test_escaped_backslash(self):
        assert string_matches("a\\b", r"a\\b") is True

    def test_mask_is_anchored(self):
        assert compile_mask("log").fullmatch("catalog") is None

    def test_non_string_never_matches(self, matches):
        assert matches({"StringMatches": "*", "Variable": "$.v"}, {"v": 5}) is False


class TestParseTimestamp:

    def test_offset(self):
        parsed = parse_timestamp("2022-04-14T03:01:00.5+02:00")

        assert parsed == datetime(2022, 4, 14, 1, 1, 0, 500000, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(hours=2)

    def test_no_offset_is_utc(self):
        assert parse_timestamp("2022-04-14T01:01:10") == datetime(2022, 4, 14, 1, 1, 10, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [
        "2022-04-14",
        "2022-13-01T00:00:00Z",
        "not a date",
        1649898060,
        None,
    ])
    def test_invalid(self, value):
        assert parse_timestamp(value) is None
