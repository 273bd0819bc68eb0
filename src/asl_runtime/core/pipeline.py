"""
Data pipeline applied around every state's action.

Input side: InputPath, then Parameters. Output side: ResultSelector, then
ResultPath (merging into the raw state input), then OutputPath.
"""
import copy
import logging
from typing import Any, Optional

from ..expressions import select, set_path
from ..models.definition import State, StateType
from ..models.execution import ExecutionContext

logger = logging.getLogger(__name__)

PATH_SUFFIX = ".$"


def replace_path_template_fields(template: Any, input: Any, context: Optional[ExecutionContext]) -> Any:
    """
    Build a new value from ``template``, evaluating every ``key.$`` field.

    Each ``key.$`` is replaced by ``key`` holding ``select(value, input, context)``;
    other keys are copied. Mappings and sequences are walked at any depth.
    """
    if isinstance(template, dict):
        result = {}
        for key, value in template.items():
            if isinstance(key, str) and key.endswith(PATH_SUFFIX):
                result[key[:-len(PATH_SUFFIX)]] = select(value, input, context)
            else:
                result[key] = replace_path_template_fields(value, input, context)
        return result
    if isinstance(template, list):
        return [replace_path_template_fields(item, input, context) for item in template]
    return template


def select_input_path(state: State, input: Any, context: ExecutionContext) -> Any:
    if state.input_path is not None:
        return select(state.input_path, input, context)
    return input


def build_parameters(state: State, input: Any, context: ExecutionContext) -> Any:
    if state.has_parameters:
        return replace_path_template_fields(state.parameters, input, context)
    return input


def process_state_input(state: State, input: Any, context: ExecutionContext) -> Any:
    data = select_input_path(state, input, context)
    logger.debug("State %s input after InputPath: %r", state.name, data)
    # Map applies Parameters per item
    if state.type is not StateType.MAP:
        data = build_parameters(state, data, context)
        logger.debug("State %s input after Parameters: %r", state.name, data)
    return data


def build_result_selector(state: State, output: Any, context: ExecutionContext) -> Any:
    if state.has_result_selector:
        return replace_path_template_fields(state.result_selector, output, context)
    return output


def apply_result_path(result_path: Optional[str], input: Any, output: Any) -> Any:
    """Merge ``output`` into ``input``; ``None`` keeps the input, ``"$"`` keeps the output"""
    if result_path is None:
        return input
    if result_path == "$":
        return output
    return set_path(copy.deepcopy(input), result_path, output)


def build_output_path(state: State, data: Any, context: ExecutionContext) -> Any:
    if state.output_path is None or state.output_path == "$":
        return data
    return select(state.output_path, data, context)


def process_state_output(state: State, input: Any, output: Any, context: ExecutionContext) -> Any:
    data = build_result_selector(state, output, context)
    data = apply_result_path(state.result_path, input, data)
    logger.debug("State %s output after ResultPath: %r", state.name, data)
    return build_output_path(state, data, context)
