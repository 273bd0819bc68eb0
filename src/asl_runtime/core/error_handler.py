"""
Catch policy applied around every state activation
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Optional

from ..exceptions import ExecutionError
from ..models.definition import Catcher, State, StateType
from ..models.execution import ExecutionContext, StateResult, Transition
from .pipeline import apply_result_path


logger = logging.getLogger(__name__)


TASK_FAILURE_ALIASES: FrozenSet[str] = frozenset({
    "States.TaskFailed",
    "States.DataLimitExceeded",
    "Lambda.Unknown",
    "Lambda.TooManyRequestsException",
    "Lambda.ServiceException",
    "Lambda.AWSLambdaException",
    "Lambda.SdkClientException",
})

# names a catcher may list that match any failure of that state kind
RESERVED_ERROR_NAMES: Dict[StateType, FrozenSet[str]] = {
    StateType.TASK: TASK_FAILURE_ALIASES,
    StateType.PARALLEL: frozenset({"States.BranchFailed"}),
}


@dataclass
class ErrorContext:
    """A failure raised by a state activation"""
    error: ExecutionError
    state: State
    input: Any
    context: Optional[ExecutionContext] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def record(self) -> Dict[str, str]:
        return {"Error": self.error.error, "Cause": self.error.cause}


class ErrorHandler:
    """Matches failures against a state's Catch table"""

    def __init__(self, reserved_names: Optional[Dict[StateType, FrozenSet[str]]] = None):
        self.reserved_names = dict(RESERVED_ERROR_NAMES if reserved_names is None else reserved_names)

    def find_catcher(self, state: State, error_name: str) -> Optional[Catcher]:
        reserved = self.reserved_names.get(state.type, frozenset())
        for catcher in state.catch:
            if catcher.matches(error_name, reserved):
                return catcher
        return None

    def handle_error(self, error_context: ErrorContext) -> Optional[StateResult]:
        """
        Convert a failure into a normal result if a catcher matches.

        The result's output is the error record merged into the state input
        via the catcher's ResultPath when one is declared, otherwise the bare
        record. Returns None when no catcher applies; the caller re-raises.
        """
        state = error_context.state
        catcher = self.find_catcher(state, error_context.error.error)
        if catcher is None:
            logger.debug(
                f"No catcher on state {state.name} for {error_context.error.error}",
                extra={"state": state.name, "error": error_context.error.error},
            )
            return None

        record = error_context.record
        logger.info(
            f"State {state.name} caught {record['Error']}, transitioning to {catcher.next}",
            extra={"state": state.name, "error": record["Error"], "next": catcher.next},
        )
        if catcher.has_result_path:
            output = apply_result_path(catcher.result_path, error_context.input, record)
        else:
            output = record
        return StateResult(output=output, transition=Transition(catcher.next), error=record)
