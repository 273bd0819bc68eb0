"""
State machine definition models
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Tuple

from ..exceptions import StateNotFoundError


class StateType(Enum):
    """State kinds"""
    PASS = "Pass"
    TASK = "Task"
    PARALLEL = "Parallel"
    MAP = "Map"
    WAIT = "Wait"
    CHOICE = "Choice"
    SUCCEED = "Succeed"
    FAIL = "Fail"


@dataclass(frozen=True)
class Retrier:
    """Retry rule; parsed and carried, not applied by the engine"""
    error_equals: Tuple[str, ...]
    interval_seconds: float = 1.0
    max_attempts: int = 3
    backoff_rate: float = 2.0


@dataclass(frozen=True)
class Catcher:
    """Maps a set of error names to a recovery transition"""
    error_equals: Tuple[str, ...]
    next: str
    result_path: Optional[str] = None
    has_result_path: bool = False

    def matches(self, error_name: str, reserved_names: FrozenSet[str] = frozenset()) -> bool:
        for name in self.error_equals:
            if name == error_name or name == "States.ALL" or name in reserved_names:
                return True
        return False


@dataclass(frozen=True)
class ChoiceRule:
    """
    A Choice rule.

    Boolean composites carry ``operator`` in ``And``/``Or``/``Not`` and their
    nested ``rules``; comparisons carry ``variable``, ``operator`` and ``operand``.
    ``operator`` is None when the rule declares no known operator key.
    ``next`` is only set on top-level rules.
    """
    operator: Optional[str] = None
    variable: Optional[str] = None
    operand: Any = None
    rules: Tuple["ChoiceRule", ...] = ()
    next: Optional[str] = None

    @property
    def is_composite(self) -> bool:
        return self.operator in ("And", "Or", "Not")


@dataclass(frozen=True)
class State:
    """Fields shared by state kinds; kinds that do not use a field leave its default"""
    type: ClassVar[StateType]

    name: str = ""
    comment: Optional[str] = None
    input_path: Optional[str] = None
    parameters: Any = None
    result_selector: Any = None
    result_path: Optional[str] = "$"
    output_path: Optional[str] = None
    catch: Tuple[Catcher, ...] = ()
    retry: Tuple[Retrier, ...] = ()
    next: Optional[str] = None
    end: bool = False

    @property
    def has_parameters(self) -> bool:
        return self.parameters is not None

    @property
    def has_result_selector(self) -> bool:
        return self.result_selector is not None


@dataclass(frozen=True)
class StateMachineDefinition:
    """A complete definition; also used for Parallel branches and Map iterators"""
    start_at: str
    states: Dict[str, State] = field(default_factory=dict)
    comment: Optional[str] = None

    def get_state(self, name: str) -> State:
        state = self.states.get(name)
        if state is None:
            raise StateNotFoundError(name)
        return state


@dataclass(frozen=True)
class PassState(State):
    type: ClassVar[StateType] = StateType.PASS

    result: Any = None
    has_result: bool = False


@dataclass(frozen=True)
class TaskState(State):
    type: ClassVar[StateType] = StateType.TASK

    resource: str = ""
    # declared but not enforced
    timeout_seconds: Optional[int] = None
    timeout_seconds_path: Optional[str] = None
    heartbeat_seconds: Optional[int] = None
    heartbeat_seconds_path: Optional[str] = None


@dataclass(frozen=True)
class ParallelState(State):
    type: ClassVar[StateType] = StateType.PARALLEL

    branches: Tuple[StateMachineDefinition, ...] = ()


@dataclass(frozen=True)
class MapState(State):
    type: ClassVar[StateType] = StateType.MAP

    iterator: Optional[StateMachineDefinition] = None
    items_path: Optional[str] = None
    max_concurrency: int = 0


@dataclass(frozen=True)
class WaitState(State):
    type: ClassVar[StateType] = StateType.WAIT

    seconds: Optional[float] = None
    seconds_path: Optional[str] = None
    timestamp: Optional[str] = None
    timestamp_path: Optional[str] = None


@dataclass(frozen=True)
class ChoiceState(State):
    type: ClassVar[StateType] = StateType.CHOICE

    choices: Tuple[ChoiceRule, ...] = ()
    default: Optional[str] = None


@dataclass(frozen=True)
class SucceedState(State):
    type: ClassVar[StateType] = StateType.SUCCEED


@dataclass(frozen=True)
class FailState(State):
    type: ClassVar[StateType] = StateType.FAIL

    error: Optional[str] = None
    cause: Optional[str] = None


STATE_CLASSES = {
    StateType.PASS: PassState,
    StateType.TASK: TaskState,
    StateType.PARALLEL: ParallelState,
    StateType.MAP: MapState,
    StateType.WAIT: WaitState,
    StateType.CHOICE: ChoiceState,
    StateType.SUCCEED: SucceedState,
    StateType.FAIL: FailState,
}
