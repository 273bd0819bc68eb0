"""
State executors, one per state kind
"""
import asyncio
import copy
import logging
from typing import TYPE_CHECKING, Any, List

from ..exceptions import (
    ExecutionError, InvalidMapInputError, ResourceNotFoundError, WorkflowEngineError
)
from ..expressions import select
from ..models.definition import (
    ChoiceState, FailState, MapState, ParallelState, PassState, State, SucceedState,
    TaskState, WaitState
)
from ..models.execution import END, ExecutionContext, StateResult, Transition
from .choices import ChoiceEvaluator, parse_timestamp
from .pipeline import build_parameters, process_state_input, process_state_output

if TYPE_CHECKING:
    from .engine import ExecutionEngine


logger = logging.getLogger(__name__)


def declared_transition(state: State) -> Transition:
    if state.end or state.next is None:
        return END
    return Transition(state.next)


class StateExecutor:
    """Base class for state executors"""

    def __init__(self, engine: "ExecutionEngine"):
        self.engine = engine

    async def execute(self, state: State, context: ExecutionContext, input: Any) -> StateResult:
        raise NotImplementedError


class PassStateExecutor(StateExecutor):

    async def execute(self, state: PassState, context: ExecutionContext, input: Any) -> StateResult:
        if state.has_result:
            output = copy.deepcopy(state.result)
        else:
            output = process_state_input(state, input, context)
        output = process_state_output(state, input, output, context)
        return StateResult(output, declared_transition(state))


class TaskStateExecutor(StateExecutor):
    """Invokes the state's resource through the context's resource invoker"""

    async def execute(self, state: TaskState, context: ExecutionContext, input: Any) -> StateResult:
        payload = process_state_input(state, input, context)
        result = await self.invoke(state, context, payload)
        output = process_state_output(state, input, result, context)
        return StateResult(output, declared_transition(state))

    async def invoke(self, state: TaskState, context: ExecutionContext, payload: Any) -> Any:
        if context.resources is None:
            raise ResourceNotFoundError(state.resource)
        logger.debug(f"Invoking resource {state.resource} from state {state.name}")
        try:
            return await context.resources.invoke(state.resource, payload)
        except WorkflowEngineError:
            raise
        except Exception as e:
            raise ExecutionError(type(e).__name__, str(e)) from e


class ParallelStateExecutor(StateExecutor):
    """
    Runs every branch concurrently on its own copy of the input.

    The output lists branch results in declaration order. The first branch
    failure propagates once gathered; siblings are not cancelled.
    """

    async def execute(self, state: ParallelState, context: ExecutionContext, input: Any) -> StateResult:
        data = process_state_input(state, input, context)
        outputs = await asyncio.gather(*(
            self.engine.run_definition(branch, context, copy.deepcopy(data))
            for branch in state.branches
        ))
        output = process_state_output(state, input, list(outputs), context)
        return StateResult(output, declared_transition(state))


class MapStateExecutor(StateExecutor):
    """
    Runs the iterator once per item, at most ``MaxConcurrency`` at a time.

    Parameters are evaluated per item against the state input (after
    InputPath) with ``$$.Map.Item`` bound to the item. Outputs keep item order.
    """

    async def execute(self, state: MapState, context: ExecutionContext, input: Any) -> StateResult:
        data = process_state_input(state, input, context)
        items = data
        if state.items_path is not None:
            items = select(state.items_path, data, context)
        if not isinstance(items, list):
            raise InvalidMapInputError()

        semaphore = asyncio.Semaphore(state.max_concurrency) if state.max_concurrency > 0 else None

        async def run_item(index: int, item: Any) -> Any:
            item_context = context.for_map_item(index, item)
            if state.has_parameters:
                item_input = build_parameters(state, data, item_context)
            else:
                item_input = copy.deepcopy(item)
            if semaphore is None:
                return await self.engine.run_definition(state.iterator, item_context, item_input)
            async with semaphore:
                return await self.engine.run_definition(state.iterator, item_context, item_input)

        logger.debug(
            f"Map state {state.name} processing {len(items)} items "
            f"(max concurrency {state.max_concurrency or 'unbounded'})"
        )
        outputs: List[Any] = await asyncio.gather(*(
            run_item(index, item) for index, item in enumerate(items)
        ))
        output = process_state_output(state, input, list(outputs), context)
        return StateResult(output, declared_transition(state))


class WaitStateExecutor(StateExecutor):
    """Suspends for a fixed or computed delay, then passes its input through"""

    async def execute(self, state: WaitState, context: ExecutionContext, input: Any) -> StateResult:
        data = process_state_input(state, input, context)
        delay_ms = self.delay_ms(state, context, data)
        logger.debug(f"Wait state {state.name} sleeping for {delay_ms}ms")
        await self.engine.sleep(delay_ms / 1000)
        output = process_state_output(state, input, data, context)
        return StateResult(output, declared_transition(state))

    def delay_ms(self, state: WaitState, context: ExecutionContext, data: Any) -> int:
        if state.seconds is not None:
            return self._seconds_to_ms(state.seconds, state.name)
        if state.seconds_path is not None:
            return self._seconds_to_ms(select(state.seconds_path, data, context), state.name)
        if state.timestamp is not None:
            return self._until(state.timestamp, state.name)
        if state.timestamp_path is not None:
            return self._until(select(state.timestamp_path, data, context), state.name)
        return 0

    @staticmethod
    def _seconds_to_ms(seconds: Any, state_name: str) -> int:
        if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
            raise ExecutionError(
                "States.Runtime", f"Wait state {state_name} resolved a non-numeric delay: {seconds!r}"
            )
        return max(int(seconds * 1000), 0)

    def _until(self, timestamp: Any, state_name: str) -> int:
        instant = parse_timestamp(timestamp)
        if instant is None:
            raise ExecutionError(
                "States.Runtime", f"Wait state {state_name} resolved an invalid timestamp: {timestamp!r}"
            )
        remaining = (instant - self.engine.clock()).total_seconds()
        return max(int(remaining * 1000), 0)


class ChoiceStateExecutor(StateExecutor):

    async def execute(self, state: ChoiceState, context: ExecutionContext, input: Any) -> StateResult:
        data = process_state_input(state, input, context)
        selected = ChoiceEvaluator(context).evaluate(state.choices, data) or state.default
        if not selected:
            raise ExecutionError(
                "States.NoChoiceMatched",
                f"Choice State ({state.name or 'unnamed'}) failed to match a Choice Rule "
                f'and no "Default" transition was specified',
            )
        return StateResult(input, Transition(selected))


class SucceedStateExecutor(StateExecutor):

    async def execute(self, state: SucceedState, context: ExecutionContext, input: Any) -> StateResult:
        data = process_state_input(state, input, context)
        return StateResult(process_state_output(state, input, data, context), END)


class FailStateExecutor(StateExecutor):

    async def execute(self, state: FailState, context: ExecutionContext, input: Any) -> StateResult:
        raise ExecutionError(
            state.error or "StateFailed",
            state.cause or "Terminated in a failed state",
        )
