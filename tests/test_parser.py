"""
Definition parser and validator tests
"""
import json

import pytest

from asl_runtime.core import DefinitionValidator, WorkflowParser
from asl_runtime.exceptions import WorkflowParseError, WorkflowValidationError
from asl_runtime.models import ChoiceState, MapState, ParallelState, PassState, StateType, TaskState


ORDER_DEFINITION = {
    "Comment": "Order flow",
    "StartAt": "Validate",
    "States": {
        "Validate": {
            "Type": "Task",
            "Resource": "validate-order",
            "TimeoutSeconds": 30,
            "Retry": [{"ErrorEquals": ["States.Timeout"], "MaxAttempts": 2}],
            "Catch": [
                {"ErrorEquals": ["States.ALL"], "Next": "Rejected", "ResultPath": "$.error"},
                {"ErrorEquals": ["Quiet"], "Next": "Rejected", "ResultPath": None},
            ],
            "Next": "Route",
        },
        "Route": {
            "Type": "Choice",
            "Choices": [
                {"Not": {"Variable": "$.express", "BooleanEquals": True}, "Next": "Ship"},
                {"And": [
                    {"Variable": "$.total", "NumericGreaterThan": 100},
                    {"Variable": "$.country", "StringEquals": "PT"},
                ], "Next": "Ship"},
            ],
            "Default": "Rejected",
        },
        "Ship": {
            "Type": "Map",
            "ItemsPath": "$.items",
            "MaxConcurrency": 3,
            "ResultPath": None,
            "Iterator": {
                "StartAt": "Pack",
                "States": {"Pack": {"Type": "Pass", "Result": {"packed": True}, "End": True}},
            },
            "Next": "Done",
        },
        "Done": {"Type": "Succeed"},
        "Rejected": {"Type": "Fail", "Error": "OrderRejected"},
    },
}


class TestWorkflowParser:

    def test_parse_dict(self, parser):
        definition = parser.parse_dict(ORDER_DEFINITION)

        assert definition.start_at == "Validate"
        assert definition.comment == "Order flow"
        assert set(definition.states) == {"Validate", "Route", "Ship", "Done", "Rejected"}

    def test_task_fields(self, parser):
        task = parser.parse_dict(ORDER_DEFINITION).get_state("Validate")

        assert isinstance(task, TaskState)
        assert task.resource == "validate-order"
        assert task.timeout_seconds == 30
        assert task.retry[0].max_attempts == 2
        assert task.result_path == "$"
        assert task.next == "Route"

    def test_catchers_track_declared_result_path(self, parser):
        first, second = parser.parse_dict(ORDER_DEFINITION).get_state("Validate").catch

        assert (first.result_path, first.has_result_path) == ("$.error", True)
        assert (second.result_path, second.has_result_path) == (None, True)

    def test_choice_rules(self, parser):
        choice = parser.parse_dict(ORDER_DEFINITION).get_state("Route")

        assert isinstance(choice, ChoiceState)
        assert choice.default == "Rejected"
        negation, conjunction = choice.choices
        assert negation.operator == "Not"
        assert negation.rules[0].operator == "BooleanEquals"
        assert negation.rules[0].next is None
        assert negation.next == "Ship"
        assert [rule.operator for rule in conjunction.rules] == ["NumericGreaterThan", "StringEquals"]

    def test_map_fields(self, parser):
        ship = parser.parse_dict(ORDER_DEFINITION).get_state("Ship")

        assert isinstance(ship, MapState)
        assert ship.max_concurrency == 3
        assert ship.result_path is None
        pack = ship.iterator.get_state("Pack")
        assert isinstance(pack, PassState)
        assert pack.has_result and pack.result == {"packed": True}

    def test_parallel_branches(self, parser):
        state = parser.parse_state("Fan", {
            "Type": "Parallel",
            "Branches": [
                {"StartAt": "A", "States": {"A": {"Type": "Pass", "End": True}}},
                {"StartAt": "B", "States": {"B": {"Type": "Succeed"}}},
            ],
            "End": True,
        })

        assert isinstance(state, ParallelState)
        assert [branch.start_at for branch in state.branches] == ["A", "B"]
        assert state.end is True

    def test_pass_result_null_is_declared(self, parser):
        state = parser.parse_state("P", {"Type": "Pass", "Result": None, "End": True})

        assert state.has_result is True
        assert state.result is None

    def test_parse_json_and_yaml(self, parser):
        yaml_text = """
StartAt: Hello
States:
  Hello:
    Type: Pass
    Result: world
    End: true
"""
        from_yaml = parser.parse(yaml_text, fmt="yaml")
        from_json = parser.parse(json.dumps(ORDER_DEFINITION))

        assert from_yaml.get_state("Hello").result == "world"
        assert from_json.get_state("Done").type is StateType.SUCCEED

    def test_parse_file(self, parser, tmp_path):
        path = tmp_path / "order.json"
        path.write_text(json.dumps(ORDER_DEFINITION), encoding="utf-8")

        assert parser.parse_file(path).start_at == "Validate"

    def test_unsupported_format(self, parser, tmp_path):
        path = tmp_path / "order.toml"
        path.write_text("", encoding="utf-8")

        with pytest.raises(WorkflowParseError, match="Unsupported file format"):
            parser.parse_file(path)

    def test_malformed_json(self, parser):
        with pytest.raises(WorkflowParseError, match="Failed to parse JSON"):
            parser.parse("{not json")

    def test_unknown_state_type(self, parser):
        with pytest.raises(WorkflowParseError, match="unknown type"):
            parser.parse_state("X", {"Type": "Sleep"})

    def test_validation_can_be_disabled(self):
        parser = WorkflowParser(validate=False)

        definition = parser.parse_dict({"StartAt": "Missing", "States": {"A": {"Type": "Succeed"}}})

        assert definition.start_at == "Missing"


class TestDefinitionValidator:

    @pytest.fixture
    def validator(self):
        return DefinitionValidator()

    def test_valid_definition(self, validator):
        assert validator.validate(ORDER_DEFINITION) == []

    def test_schema_problems(self, validator):
        problems = validator.validate({"StartAt": "A", "States": {"A": {"Type": "Task", "End": True}}})

        assert problems == ["States.A: 'Resource' is a required property"]

    def test_missing_top_level_fields(self, validator):
        problems = validator.validate({"States": {}})

        assert any("'StartAt' is a required property" in problem for problem in problems)

    def test_semantic_problems(self, validator):
        problems = validator.validate({
            "StartAt": "Nowhere",
            "States": {
                "Both": {"Type": "Pass", "Next": "Gone", "End": True},
                "Neither": {"Type": "Pass"},
                "Sleep": {"Type": "Wait", "Seconds": 1, "SecondsPath": "$.s", "End": True},
                "Pick": {"Type": "Choice", "Choices": [{"Variable": "$.a", "IsNull": True}]},
            },
        })

        assert "StartAt: state 'Nowhere' does not exist" in problems
        assert "States.Both: exactly one of 'Next' or 'End' is required" in problems
        assert "States.Both.Next: state 'Gone' does not exist" in problems
        assert "States.Neither: exactly one of 'Next' or 'End' is required" in problems
        assert any(problem.startswith("States.Sleep: exactly one of Seconds") for problem in problems)
        assert "States.Pick.Choices.0: 'Next' is required" in problems

    def test_nested_problems_are_prefixed(self, validator):
        problems = validator.validate({
            "StartAt": "Fan",
            "States": {
                "Fan": {
                    "Type": "Parallel",
                    "Branches": [{"StartAt": "Lost", "States": {"A": {"Type": "Succeed"}}}],
                    "End": True,
                },
            },
        })

        assert problems == ["States.Fan.Branches.0.StartAt: state 'Lost' does not exist"]

    def test_empty_error_equals(self, validator):
        problems = validator.validate({
            "StartAt": "A",
            "States": {
                "A": {"Type": "Pass", "Catch": [{"ErrorEquals": [], "Next": "A"}], "End": True},
            },
        })

        assert problems == ["States.A.Catch.0.ErrorEquals: must not be empty"]

    def test_check_raises_with_problems(self, validator):
        with pytest.raises(WorkflowValidationError) as exc_info:
            validator.check({"StartAt": "A", "States": {"B": {"Type": "Succeed"}}})

        assert exc_info.value.problems == ["StartAt: state 'A' does not exist"]
        assert exc_info.value.error == "WorkflowValidationError"
