"""
State machine definition parser
"""
import yaml
import json
from typing import Dict, Any, Optional, Tuple, Union
from pathlib import Path

from ..models.definition import (
    Catcher, ChoiceRule, Retrier, State, StateMachineDefinition, StateType, STATE_CLASSES
)
from ..exceptions import WorkflowParseError
from .choices import BOOLEAN_OPERATORS, OPERATORS
from .validator import DefinitionValidator


_COMMON_FIELDS = {
    "Comment": "comment",
    "InputPath": "input_path",
    "OutputPath": "output_path",
    "Parameters": "parameters",
    "ResultSelector": "result_selector",
    "Next": "next",
}

_KIND_FIELDS = {
    StateType.TASK: {
        "Resource": "resource",
        "TimeoutSeconds": "timeout_seconds",
        "TimeoutSecondsPath": "timeout_seconds_path",
        "HeartbeatSeconds": "heartbeat_seconds",
        "HeartbeatSecondsPath": "heartbeat_seconds_path",
    },
    StateType.MAP: {
        "ItemsPath": "items_path",
        "MaxConcurrency": "max_concurrency",
    },
    StateType.WAIT: {
        "Seconds": "seconds",
        "SecondsPath": "seconds_path",
        "Timestamp": "timestamp",
        "TimestampPath": "timestamp_path",
    },
    StateType.CHOICE: {
        "Default": "default",
    },
    StateType.FAIL: {
        "Error": "error",
        "Cause": "cause",
    },
}


class WorkflowParser:
    """Parses state machine definitions from JSON or YAML into typed models"""

    def __init__(self, validator: Optional[DefinitionValidator] = None, validate: bool = True):
        self.validator = validator or DefinitionValidator()
        self.validate = validate
        self.parsers = {
            'yaml': self._parse_yaml,
            'yml': self._parse_yaml,
            'json': self._parse_json
        }

    def parse(self, content: str, fmt: str = "json") -> StateMachineDefinition:
        """
        Parse a definition held in a string.

        Args:
            content: definition text
            fmt: ``json``, ``yaml`` or ``yml``

        Returns:
            StateMachineDefinition: the parsed definition
        """
        if fmt not in self.parsers:
            raise WorkflowParseError(f"Unsupported format: {fmt}")
        return self.parse_dict(self.parsers[fmt](content))

    def parse_file(self, file_path: Union[str, Path]) -> StateMachineDefinition:
        """Parse a definition file, choosing the format from its suffix"""
        file_path = Path(file_path)
        suffix = file_path.suffix.lower().lstrip('.')
        if suffix not in self.parsers:
            raise WorkflowParseError(f"Unsupported file format: {suffix}")

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except OSError as e:
            raise WorkflowParseError(f"Failed to read {file_path}: {e}")

        return self.parse_dict(self.parsers[suffix](content))

    def parse_dict(self, data: Dict[str, Any]) -> StateMachineDefinition:
        """Convert an already-decoded definition document into models"""
        if not isinstance(data, dict):
            raise WorkflowParseError(f"Definition must be an object, got {type(data).__name__}")
        if self.validate:
            self.validator.check(data)
        return self._parse_definition(data)

    def parse_state(self, name: str, data: Dict[str, Any]) -> State:
        """Parse a single state outside of any definition"""
        if not isinstance(data, dict) or "Type" not in data:
            raise WorkflowParseError(f"State '{name}' must be an object with a 'Type'")
        try:
            state_type = StateType(data["Type"])
        except ValueError:
            raise WorkflowParseError(f"State '{name}' has unknown type: {data['Type']}")

        fields: Dict[str, Any] = {"name": name, "end": data.get("End") is True}
        for key, attr in _COMMON_FIELDS.items():
            if key in data:
                fields[attr] = data[key]
        for key, attr in _KIND_FIELDS.get(state_type, {}).items():
            if key in data:
                fields[attr] = data[key]
        if "ResultPath" in data:
            fields["result_path"] = data["ResultPath"]

        fields["catch"] = tuple(self._parse_catcher(c) for c in data.get("Catch", []))
        fields["retry"] = tuple(self._parse_retrier(r) for r in data.get("Retry", []))

        if state_type is StateType.PASS and "Result" in data:
            fields["result"] = data["Result"]
            fields["has_result"] = True
        elif state_type is StateType.PARALLEL:
            fields["branches"] = tuple(self._parse_definition(b) for b in data.get("Branches", []))
        elif state_type is StateType.MAP:
            fields["iterator"] = self._parse_definition(data.get("Iterator"))
            fields["max_concurrency"] = int(data.get("MaxConcurrency") or 0)
        elif state_type is StateType.CHOICE:
            fields["choices"] = tuple(
                self._parse_choice_rule(rule, top_level=True) for rule in data.get("Choices", [])
            )

        return STATE_CLASSES[state_type](**fields)

    def _parse_yaml(self, content: str) -> Dict[str, Any]:
        try:
            return yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise WorkflowParseError(f"Failed to parse YAML: {e}")

    def _parse_json(self, content: str) -> Dict[str, Any]:
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise WorkflowParseError(f"Failed to parse JSON: {e}")

    def _parse_definition(self, data: Dict[str, Any]) -> StateMachineDefinition:
        if not isinstance(data, dict) or "StartAt" not in data or "States" not in data:
            raise WorkflowParseError("Definition requires 'StartAt' and 'States'")
        states = {
            name: self.parse_state(name, state)
            for name, state in data["States"].items()
        }
        return StateMachineDefinition(
            start_at=data["StartAt"],
            states=states,
            comment=data.get("Comment"),
        )

    def _parse_catcher(self, data: Dict[str, Any]) -> Catcher:
        return Catcher(
            error_equals=tuple(data.get("ErrorEquals", ())),
            next=data.get("Next"),
            result_path=data.get("ResultPath"),
            has_result_path="ResultPath" in data,
        )

    def _parse_retrier(self, data: Dict[str, Any]) -> Retrier:
        return Retrier(
            error_equals=tuple(data.get("ErrorEquals", ())),
            interval_seconds=data.get("IntervalSeconds", 1.0),
            max_attempts=data.get("MaxAttempts", 3),
            backoff_rate=data.get("BackoffRate", 2.0),
        )

    def _parse_choice_rule(self, data: Dict[str, Any], top_level: bool = False) -> ChoiceRule:
        operator, operand = self._find_operator(data)
        next_state = data.get("Next") if top_level else None
        if operator in BOOLEAN_OPERATORS:
            nested = operand if operator != "Not" else [operand]
            if not isinstance(nested, list):
                raise WorkflowParseError(f"'{operator}' requires a list of rules")
            return ChoiceRule(
                operator=operator,
                rules=tuple(self._parse_choice_rule(rule) for rule in nested),
                next=next_state,
            )
        return ChoiceRule(
            operator=operator,
            variable=data.get("Variable"),
            operand=operand,
            next=next_state,
        )

    @staticmethod
    def _find_operator(data: Dict[str, Any]) -> Tuple[Optional[str], Any]:
        if not isinstance(data, dict):
            raise WorkflowParseError(f"Choice rule must be an object, got {type(data).__name__}")
        for operator in OPERATORS:
            if operator in data:
                return operator, data[operator]
        return None, None
