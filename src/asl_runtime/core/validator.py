"""
Definition validation: JSON Schema structure plus cross-reference checks
"""
import logging
from typing import Any, Dict, List

from jsonschema import Draft7Validator

from ..exceptions import WorkflowValidationError


logger = logging.getLogger(__name__)

STATE_TYPES = ["Pass", "Task", "Parallel", "Map", "Wait", "Choice", "Succeed", "Fail"]

TRANSITIONING_TYPES = {"Pass", "Task", "Parallel", "Map", "Wait"}

WAIT_FIELDS = ("Seconds", "SecondsPath", "Timestamp", "TimestampPath")


def _requires(state_type: str, *fields: str) -> Dict[str, Any]:
    return {
        "if": {"properties": {"Type": {"const": state_type}}},
        "then": {"required": list(fields)},
    }


DEFINITION_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["StartAt", "States"],
    "properties": {
        "Comment": {"type": "string"},
        "StartAt": {"type": "string", "minLength": 1},
        "States": {
            "type": "object",
            "minProperties": 1,
            "additionalProperties": {"$ref": "#/definitions/state"},
        },
    },
    "definitions": {
        "catcher": {
            "type": "object",
            "required": ["ErrorEquals", "Next"],
            "properties": {
                "ErrorEquals": {"type": "array", "items": {"type": "string"}},
                "Next": {"type": "string"},
                "ResultPath": {"type": ["string", "null"]},
            },
        },
        "retrier": {
            "type": "object",
            "required": ["ErrorEquals"],
            "properties": {
                "ErrorEquals": {"type": "array", "items": {"type": "string"}},
                "IntervalSeconds": {"type": "number", "minimum": 0},
                "MaxAttempts": {"type": "integer", "minimum": 0},
                "BackoffRate": {"type": "number", "minimum": 1},
            },
        },
        "state": {
            "type": "object",
            "required": ["Type"],
            "properties": {
                "Type": {"enum": STATE_TYPES},
                "Comment": {"type": "string"},
                "Next": {"type": "string"},
                "End": {"type": "boolean"},
                "InputPath": {"type": ["string", "null"]},
                "OutputPath": {"type": ["string", "null"]},
                "ResultPath": {"type": ["string", "null"]},
                "Parameters": {"type": ["object", "array"]},
                "ResultSelector": {"type": ["object", "array"]},
                "Resource": {"type": "string"},
                "Branches": {"type": "array", "minItems": 1, "items": {"$ref": "#"}},
                "Iterator": {"$ref": "#"},
                "ItemsPath": {"type": "string"},
                "MaxConcurrency": {"type": "integer", "minimum": 0},
                "Seconds": {"type": "number", "minimum": 0},
                "SecondsPath": {"type": "string"},
                "Timestamp": {"type": "string"},
                "TimestampPath": {"type": "string"},
                "Choices": {"type": "array", "minItems": 1, "items": {"type": "object"}},
                "Default": {"type": "string"},
                "Error": {"type": "string"},
                "Cause": {"type": "string"},
                "TimeoutSeconds": {"type": "integer", "minimum": 1},
                "TimeoutSecondsPath": {"type": "string"},
                "HeartbeatSeconds": {"type": "integer", "minimum": 1},
                "HeartbeatSecondsPath": {"type": "string"},
                "Catch": {"type": "array", "items": {"$ref": "#/definitions/catcher"}},
                "Retry": {"type": "array", "items": {"$ref": "#/definitions/retrier"}},
            },
            "allOf": [
                _requires("Task", "Resource"),
                _requires("Parallel", "Branches"),
                _requires("Map", "Iterator"),
                _requires("Choice", "Choices"),
            ],
        },
    },
}


class DefinitionValidator:
    """Validates a raw definition document before it is parsed into models"""

    def __init__(self, schema: Dict[str, Any] = None):
        self.schema = schema or DEFINITION_SCHEMA
        self.validator = Draft7Validator(self.schema)

    def validate(self, document: Any) -> List[str]:
        """Return every problem found; an empty list means the definition is valid"""
        errors = []
        for error in sorted(self.validator.iter_errors(document), key=lambda e: [str(p) for p in e.absolute_path]):
            path = ".".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
            errors.append(f"{path}: {error.message}")
        if errors:
            return errors
        return self._check_semantics(document, "")

    def check(self, document: Any):
        errors = self.validate(document)
        if errors:
            logger.debug(f"Definition rejected with {len(errors)} problems")
            raise WorkflowValidationError("Invalid state machine definition", errors)

    def _check_semantics(self, document: Dict[str, Any], prefix: str) -> List[str]:
        errors = []
        states = document["States"]
        if document["StartAt"] not in states:
            errors.append(f"{prefix}StartAt: state '{document['StartAt']}' does not exist")

        for name, state in states.items():
            where = f"{prefix}States.{name}"
            state_type = state["Type"]

            def target(field: str, value: str):
                if value not in states:
                    errors.append(f"{where}.{field}: state '{value}' does not exist")

            if state_type in TRANSITIONING_TYPES:
                has_next, has_end = "Next" in state, state.get("End") is True
                if has_next == has_end:
                    errors.append(f"{where}: exactly one of 'Next' or 'End' is required")
            if "Next" in state:
                target("Next", state["Next"])

            for index, catcher in enumerate(state.get("Catch", [])):
                if not catcher["ErrorEquals"]:
                    errors.append(f"{where}.Catch.{index}.ErrorEquals: must not be empty")
                target(f"Catch.{index}.Next", catcher["Next"])
            for index, retrier in enumerate(state.get("Retry", [])):
                if not retrier["ErrorEquals"]:
                    errors.append(f"{where}.Retry.{index}.ErrorEquals: must not be empty")

            if state_type == "Wait":
                declared = [field for field in WAIT_FIELDS if field in state]
                if len(declared) != 1:
                    errors.append(f"{where}: exactly one of {', '.join(WAIT_FIELDS)} is required")
            elif state_type == "Choice":
                if "Default" in state:
                    target("Default", state["Default"])
                for index, rule in enumerate(state["Choices"]):
                    if "Next" not in rule:
                        errors.append(f"{where}.Choices.{index}: 'Next' is required")
                    else:
                        target(f"Choices.{index}.Next", rule["Next"])
            elif state_type == "Parallel":
                for index, branch in enumerate(state["Branches"]):
                    errors.extend(self._check_semantics(branch, f"{where}.Branches.{index}."))
            elif state_type == "Map":
                errors.extend(self._check_semantics(state["Iterator"], f"{where}.Iterator."))
        return errors
