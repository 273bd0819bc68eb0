"""Definition and execution models"""

from .definition import (
    Catcher, ChoiceRule, ChoiceState, FailState, MapState, ParallelState, PassState,
    Retrier, State, StateMachineDefinition, StateType, SucceedState, TaskState, WaitState,
    STATE_CLASSES
)
from .execution import (
    END, ExecutionContext, ExecutionInfo, ExecutionRecord, MapItemInfo, StateInfo,
    StateMachineInfo, StateResult, TaskInfo, Transition
)

__all__ = [
    "Catcher",
    "ChoiceRule",
    "ChoiceState",
    "FailState",
    "MapState",
    "ParallelState",
    "PassState",
    "Retrier",
    "State",
    "StateMachineDefinition",
    "StateType",
    "SucceedState",
    "TaskState",
    "WaitState",
    "STATE_CLASSES",
    "END",
    "ExecutionContext",
    "ExecutionInfo",
    "ExecutionRecord",
    "MapItemInfo",
    "StateInfo",
    "StateMachineInfo",
    "StateResult",
    "TaskInfo",
    "Transition",
]
