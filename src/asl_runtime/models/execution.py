"""
Execution models
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional
from uuid import uuid4


@dataclass(frozen=True)
class StateMachineInfo:
    """State machine identity exposed as $$.StateMachine"""
    id: str
    name: str


@dataclass(frozen=True)
class ExecutionInfo:
    """Execution identity exposed as $$.Execution"""
    id: str
    name: str
    role_arn: str
    start_time: str
    input: Any = None


@dataclass(frozen=True)
class StateInfo:
    """Per-activation record exposed as $$.State"""
    name: str
    entered_time: str
    retry_count: int = 0


@dataclass(frozen=True)
class TaskInfo:
    token: str


@dataclass(frozen=True)
class MapItemInfo:
    index: int
    value: Any


@dataclass(frozen=True)
class ExecutionContext:
    """
    Context threaded through every state activation.

    The identity fields are shared by the whole run; ``state``, ``task`` and
    ``map_item`` are replaced for each activation via :meth:`for_state` and
    :meth:`for_map_item`, which return new objects so concurrent branches and
    iterations never observe each other's records.
    """
    resources: Any
    state_machine: StateMachineInfo
    execution: ExecutionInfo
    state: Optional[StateInfo] = None
    task: Optional[TaskInfo] = None
    map_item: Optional[MapItemInfo] = None

    def for_state(self, name: str, entered_time: str, is_task: bool = False) -> "ExecutionContext":
        task = TaskInfo(token=f"TaskToken-{uuid4().hex}") if is_task else None
        return replace(
            self,
            state=StateInfo(name=name, entered_time=entered_time),
            task=task,
        )

    def for_map_item(self, index: int, value: Any) -> "ExecutionContext":
        return replace(self, map_item=MapItemInfo(index=index, value=value))

    def to_dict(self) -> Dict[str, Any]:
        """Document view used to resolve ``$$`` paths"""
        data: Dict[str, Any] = {
            "StateMachine": {
                "Id": self.state_machine.id,
                "Name": self.state_machine.name,
            },
            "Execution": {
                "Id": self.execution.id,
                "Name": self.execution.name,
                "RoleArn": self.execution.role_arn,
                "StartTime": self.execution.start_time,
                "Input": self.execution.input,
            },
        }
        if self.state is not None:
            data["State"] = {
                "Name": self.state.name,
                "EnteredTime": self.state.entered_time,
                "RetryCount": self.state.retry_count,
            }
        if self.task is not None:
            data["Task"] = {"Token": self.task.token}
        if self.map_item is not None:
            data["Map"] = {
                "Item": {
                    "Index": self.map_item.index,
                    "Value": self.map_item.value,
                }
            }
        return data


@dataclass(frozen=True)
class Transition:
    """Which state follows an activation; ``next`` is None for a terminal transition"""
    next: Optional[str] = None

    @property
    def end(self) -> bool:
        return self.next is None

    def to_dict(self) -> Dict[str, Any]:
        if self.next is None:
            return {"End": True}
        return {"Next": self.next}


END = Transition()


@dataclass(frozen=True)
class StateResult:
    """Outcome of one state activation"""
    output: Any
    transition: Transition = END
    error: Optional[Dict[str, str]] = None


@dataclass
class ExecutionRecord:
    """Summary of one run, kept by the engine for inspection"""
    execution_id: str
    status: str = "RUNNING"
    output: Any = None
    error: Optional[Dict[str, str]] = None
    start_time: Optional[str] = None
    stop_time: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
