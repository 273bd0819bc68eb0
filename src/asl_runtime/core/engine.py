"""
State machine execution engine
"""
import asyncio
import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Union
from uuid import uuid4

from ..config import EngineSettings
from ..exceptions import ExecutionError, WorkflowEngineError
from ..integrations.resources import as_invoker
from ..models.definition import State, StateMachineDefinition, StateType
from ..models.execution import (
    ExecutionContext, ExecutionInfo, ExecutionRecord, StateMachineInfo, StateResult
)
from ..monitoring import EventLogger, ExecutionEvent, MetricsRecorder, TracingManager
from .error_handler import ErrorContext, ErrorHandler
from .executors import (
    ChoiceStateExecutor, FailStateExecutor, MapStateExecutor, ParallelStateExecutor,
    PassStateExecutor, StateExecutor, SucceedStateExecutor, TaskStateExecutor,
    WaitStateExecutor
)
from .parser import WorkflowParser


logger = logging.getLogger(__name__)

DefinitionLike = Union[StateMachineDefinition, Dict[str, Any], str]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ExecutionEngine:
    """
    Drives a state machine definition from ``StartAt`` to a terminal state.

    ``sleep`` and ``clock`` default to ``asyncio.sleep`` and the current UTC
    time; Wait states use both, so tests can substitute logical time.
    """

    def __init__(
        self,
        settings: EngineSettings = None,
        sleep: Callable[[float], Awaitable[Any]] = None,
        clock: Callable[[], datetime] = None,
        error_handler: ErrorHandler = None,
        parser: WorkflowParser = None,
        metrics: MetricsRecorder = None,
        tracer: TracingManager = None,
        events: EventLogger = None
    ):
        self.settings = settings or EngineSettings()
        self.sleep = sleep or asyncio.sleep
        self.clock = clock or utc_now
        self.error_handler = error_handler or ErrorHandler()
        self.parser = parser or WorkflowParser()
        self.metrics = metrics or MetricsRecorder()
        self.tracer = tracer or TracingManager()
        self.events = events or EventLogger()

        self.executors: Dict[StateType, StateExecutor] = {
            StateType.PASS: PassStateExecutor(self),
            StateType.TASK: TaskStateExecutor(self),
            StateType.PARALLEL: ParallelStateExecutor(self),
            StateType.MAP: MapStateExecutor(self),
            StateType.WAIT: WaitStateExecutor(self),
            StateType.CHOICE: ChoiceStateExecutor(self),
            StateType.SUCCEED: SucceedStateExecutor(self),
            StateType.FAIL: FailStateExecutor(self),
        }
        missing = set(StateType) - set(self.executors)
        if missing:
            raise RuntimeError(f"No executor for state types: {sorted(t.value for t in missing)}")

        self.executions: "OrderedDict[str, ExecutionRecord]" = OrderedDict()

    def create_context(
        self,
        resources: Any,
        input: Any,
        execution: Optional[Dict[str, Any]] = None
    ) -> ExecutionContext:
        """Build the run-scoped context; ``execution`` overrides Id, Name, RoleArn or StartTime"""
        now = self.clock()
        stamp = int(now.timestamp() * 1000)
        overrides = execution or {}
        return ExecutionContext(
            resources=as_invoker(resources),
            state_machine=StateMachineInfo(
                id=f"{self.settings.state_machine_name}-{stamp}",
                name=self.settings.state_machine_name,
            ),
            execution=ExecutionInfo(
                id=overrides.get("Id", f"{self.settings.execution_name}-{stamp}-{uuid4().hex[:8]}"),
                name=overrides.get("Name", self.settings.execution_name),
                role_arn=overrides.get("RoleArn", self.settings.role_arn),
                start_time=overrides.get("StartTime", isoformat(now)),
                input=input,
            ),
        )

    def load_definition(self, definition: DefinitionLike) -> StateMachineDefinition:
        if isinstance(definition, StateMachineDefinition):
            return definition
        if isinstance(definition, dict):
            return self.parser.parse_dict(definition)
        if isinstance(definition, str):
            return self.parser.parse(definition)
        raise TypeError(f"Unsupported definition type: {type(definition).__name__}")

    async def run(
        self,
        definition: DefinitionLike,
        input: Any = None,
        resources: Any = None,
        execution: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Run a definition to completion and return its final output"""
        definition = self.load_definition(definition)
        context = self.create_context(resources, input, execution)
        execution_id = context.execution.id
        record = ExecutionRecord(execution_id=execution_id, start_time=context.execution.start_time)
        self.record_execution(record)

        self.events.log(ExecutionEvent.EXECUTION_STARTED, execution_id, start_at=definition.start_at)
        try:
            output = await self.run_definition(definition, context, input)
        except WorkflowEngineError as e:
            record.status = "FAILED"
            record.error = e.to_dict()
            record.stop_time = isoformat(self.clock())
            self.metrics.record_execution(record.status)
            self.events.log(ExecutionEvent.EXECUTION_FAILED, execution_id, error=e.error, cause=e.cause)
            raise

        record.status = "SUCCEEDED"
        record.output = output
        record.stop_time = isoformat(self.clock())
        self.metrics.record_execution(record.status)
        self.events.log(ExecutionEvent.EXECUTION_SUCCEEDED, execution_id)
        return output

    async def run_definition(
        self,
        definition: StateMachineDefinition,
        context: ExecutionContext,
        input: Any
    ) -> Any:
        """
        Execute states from ``definition.start_at`` until a terminal transition.

        Also drives Parallel branches and Map iterators, with ``context`` as
        the base their per-state contexts derive from.
        """
        state_name = definition.start_at
        data = input
        while True:
            state = definition.get_state(state_name)
            state_context = context.for_state(
                state_name,
                isoformat(self.clock()),
                is_task=state.type is StateType.TASK,
            )
            self.events.log(
                ExecutionEvent.STATE_ENTERED, context.execution.id, state_name,
                state_type=state.type.value
            )
            result = await self.run_state(state, state_context, data)
            self.events.log(
                ExecutionEvent.STATE_EXITED, context.execution.id, state_name,
                transition=result.transition.to_dict()
            )

            data = result.output
            if result.transition.end:
                return data
            state_name = result.transition.next

    async def run_state(self, state: State, context: ExecutionContext, input: Any) -> StateResult:
        """Execute one activation under the state's Catch table"""
        executor = self.executors[state.type]
        span = {"duration": 0.0}
        try:
            with self.tracer.span(context.execution.id, state.name, state.type.value) as span:
                try:
                    result = await executor.execute(state, context, input)
                except ExecutionError as e:
                    result = self.error_handler.handle_error(ErrorContext(e, state, input, context))
                    if result is None:
                        raise
                    self.metrics.record_caught_error(state.type.value, e.error)
                    self.events.log(
                        ExecutionEvent.ERROR_CAUGHT, context.execution.id, state.name,
                        error=e.error, cause=e.cause, next_state=result.transition.next
                    )
        finally:
            self.metrics.record_activation(state.type.value, span["duration"])
        return result

    def record_execution(self, record: ExecutionRecord):
        """Keep ``record``, evicting the oldest records beyond ``settings.execution_history``"""
        self.executions.pop(record.execution_id, None)
        self.executions[record.execution_id] = record
        while len(self.executions) > max(self.settings.execution_history, 0):
            evicted, _ = self.executions.popitem(last=False)
            logger.debug(f"Evicted execution record {evicted}")

    def get_execution(self, execution_id: str) -> Optional[ExecutionRecord]:
        return self.executions.get(execution_id)


async def run(
    definition: DefinitionLike,
    resources: Any = None,
    input: Any = None,
    execution: Optional[Dict[str, Any]] = None
) -> Any:
    """Run ``definition`` once with a default engine"""
    return await ExecutionEngine().run(definition, input, resources=resources, execution=execution)
