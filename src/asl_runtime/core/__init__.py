"""Core engine components"""

from .choices import ChoiceEvaluator
from .engine import ExecutionEngine, run
from .error_handler import ErrorContext, ErrorHandler, RESERVED_ERROR_NAMES
from .parser import WorkflowParser
from .validator import DefinitionValidator

__all__ = [
    "ChoiceEvaluator",
    "DefinitionValidator",
    "ErrorContext",
    "ErrorHandler",
    "ExecutionEngine",
    "RESERVED_ERROR_NAMES",
    "WorkflowParser",
    "run",
]
