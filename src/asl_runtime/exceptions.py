"""
Workflow engine exception definitions
"""
from typing import Any, Dict, Optional


class WorkflowEngineError(Exception):
    """Base exception carrying an error name and a human-readable cause"""

    default_error = "States.Runtime"

    def __init__(self, cause: str, error: Optional[str] = None):
        self.error = error or self.default_error
        self.cause = cause
        super().__init__(cause)

    def to_dict(self) -> Dict[str, Any]:
        return {"Error": self.error, "Cause": self.cause}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(error={self.error!r}, cause={self.cause!r})"


class ExecutionError(WorkflowEngineError):
    """Failure raised while running a workflow; may be intercepted by a Catch table"""

    def __init__(self, error: str, cause: str):
        super().__init__(cause, error)


class DefinitionError(WorkflowEngineError):
    """Fatal error in the definition itself; never intercepted by Catch tables"""


class WorkflowParseError(DefinitionError):
    """Workflow document could not be parsed"""

    default_error = "WorkflowParseError"


class WorkflowValidationError(DefinitionError):
    """Workflow document failed validation"""

    default_error = "WorkflowValidationError"

    def __init__(self, message: str, problems: Optional[list] = None):
        self.problems = list(problems or [])
        if self.problems:
            message = f"{message}: " + "; ".join(self.problems)
        super().__init__(message)


class StateNotFoundError(DefinitionError):
    """Transition targets a state that does not exist"""

    default_error = "StateNotFound"

    def __init__(self, state_name: str):
        self.state_name = state_name
        super().__init__(f"State '{state_name}' not found")


class InvalidPathError(DefinitionError):
    """Path expression is malformed or not a string"""

    default_error = "InvalidPath"


class InvalidIntrinsicFunctionError(DefinitionError):
    """Intrinsic function name is not recognised"""

    default_error = "InvalidIntrinsicFunction"

    def __init__(self, function_name: str):
        self.function_name = function_name
        super().__init__(f"Function '{function_name}' is not supported")


class TemplateParseError(DefinitionError):
    """String literal or format template is malformed"""

    default_error = "TemplateParseError"

    def __init__(self, message: str, index: int, expression: str):
        self.index = index
        self.expression = expression
        super().__init__(f"Invalid template: {message} at index {index} in {expression!r}")


class InvalidMapInputError(DefinitionError):
    """Map state items did not resolve to a sequence"""

    default_error = "InvalidMapInput"

    def __init__(self, message: str = "Map state input must be an array."):
        super().__init__(message)


class ResourceNotFoundError(ExecutionError):
    """Task resource is not registered with the invoker"""

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__("ResourceNotFound", f"Resource '{resource}' is not registered")
