"""
Execution engine for Amazon States Language state machines
"""

__version__ = "0.1.0"

from .config import EngineSettings, configure_logging
from .core import ExecutionEngine, WorkflowParser, run
from .exceptions import DefinitionError, ExecutionError, WorkflowEngineError
from .integrations import LocalResourceRegistry, ResourceInvoker

__all__ = [
    "DefinitionError",
    "EngineSettings",
    "ExecutionEngine",
    "ExecutionError",
    "LocalResourceRegistry",
    "ResourceInvoker",
    "WorkflowEngineError",
    "WorkflowParser",
    "configure_logging",
    "run",
]
