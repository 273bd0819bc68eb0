"""
Shared pytest fixtures
"""
from datetime import datetime, timezone

import pytest

from asl_runtime.core import ExecutionEngine, WorkflowParser
from asl_runtime.models import StateType


NOW = datetime(2022, 4, 14, 1, 1, 0, tzinfo=timezone.utc)


class RecordingSleeper:
    """Stands in for asyncio.sleep and records requested delays"""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)

    @property
    def total_ms(self):
        return round(sum(self.calls) * 1000)


@pytest.fixture
def sleeper():
    return RecordingSleeper()


@pytest.fixture
def engine(sleeper):
    """Engine with logical time: sleeps are recorded and the clock is fixed"""
    return ExecutionEngine(sleep=sleeper, clock=lambda: NOW)


@pytest.fixture
def parser():
    return WorkflowParser()


@pytest.fixture
def run_state(engine, parser):
    """Run a single raw state definition through the engine's catch policy"""
    async def _run_state(state_data, input, resources=None, name="TestState"):
        state = parser.parse_state(name, state_data)
        context = engine.create_context(resources, input).for_state(
            name, "2022-04-14T01:01:00.000Z", is_task=state.type is StateType.TASK
        )
        return await engine.run_state(state, context, input)
    return _run_state


@pytest.fixture
def echo_task_definition():
    return {
        "StartAt": "Echo",
        "States": {
            "Echo": {"Type": "Task", "Resource": "echo", "End": True},
        },
    }
