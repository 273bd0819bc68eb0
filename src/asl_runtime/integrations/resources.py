"""
Resource invokers: the boundary between Task states and the side effects they trigger
"""
from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass, field
from abc import ABC, abstractmethod
import inspect
import logging
import time

from jsonschema import Draft7Validator

from ..exceptions import ExecutionError, ResourceNotFoundError


logger = logging.getLogger(__name__)


class ResourceInvoker(ABC):
    """Capability used by Task states to perform their work"""

    @abstractmethod
    async def invoke(self, resource: str, payload: Any) -> Any:
        """Invoke ``resource`` with ``payload`` and return its result"""
        pass


@dataclass
class ResourceDefinition:
    """A registered resource"""
    resource: str
    handler: Callable[[Any], Any]
    description: str = ""
    input_schema: Optional[Dict[str, Any]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


async def _call(handler: Callable, *args: Any) -> Any:
    result = handler(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class LocalResourceRegistry(ResourceInvoker):
    """In-process resources backed by plain or async callables"""

    def __init__(self):
        self.resources: Dict[str, ResourceDefinition] = {}

    def register(
        self,
        resource: str,
        handler: Callable[[Any], Any],
        description: str = "",
        input_schema: Optional[Dict[str, Any]] = None,
    ) -> ResourceDefinition:
        if not callable(handler):
            raise ValueError(f"Handler for resource {resource} must be callable")
        if input_schema is not None:
            Draft7Validator.check_schema(input_schema)

        definition = ResourceDefinition(
            resource=resource,
            handler=handler,
            description=description,
            input_schema=input_schema,
        )
        self.resources[resource] = definition
        logger.info(f"Registered resource: {resource}")
        return definition

    def resource(self, resource: str, **kwargs: Any) -> Callable:
        """Decorator form of :meth:`register`"""
        def decorator(handler: Callable[[Any], Any]) -> Callable[[Any], Any]:
            self.register(resource, handler, **kwargs)
            return handler
        return decorator

    def unregister(self, resource: str):
        if self.resources.pop(resource, None) is not None:
            logger.info(f"Unregistered resource: {resource}")

    def get(self, resource: str) -> Optional[ResourceDefinition]:
        return self.resources.get(resource)

    def list_resources(self) -> List[str]:
        return sorted(self.resources)

    def validate_payload(self, resource: str, payload: Any) -> List[str]:
        definition = self.resources.get(resource)
        if definition is None:
            return [f"Resource not found: {resource}"]
        if not definition.input_schema:
            return []
        validator = Draft7Validator(definition.input_schema)
        return [error.message for error in validator.iter_errors(payload)]

    async def invoke(self, resource: str, payload: Any) -> Any:
        definition = self.resources.get(resource)
        if definition is None:
            raise ResourceNotFoundError(resource)

        errors = self.validate_payload(resource, payload)
        if errors:
            raise ExecutionError(
                "States.TaskFailed",
                f"Invalid payload for resource {resource}: " + "; ".join(errors),
            )

        start_time = time.perf_counter()
        try:
            result = await _call(definition.handler, payload)
        except Exception as e:
            logger.warning(f"Resource {resource} invocation failed: {e}")
            raise
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Resource {resource} invoked in {duration_ms:.2f}ms")
        return result


class CallableResourceInvoker(ResourceInvoker):
    """Adapts a bare ``(resource, payload)`` callable, sync or async"""

    def __init__(self, func: Callable[[str, Any], Any]):
        if not callable(func):
            raise ValueError("Resource invoker must be callable")
        self.func = func

    async def invoke(self, resource: str, payload: Any) -> Any:
        return await _call(self.func, resource, payload)


def as_invoker(resources: Any) -> Optional[ResourceInvoker]:
    """Coerce an invoker, a ``{resource: handler}`` mapping or a callable into an invoker"""
    if resources is None or isinstance(resources, ResourceInvoker):
        return resources
    if isinstance(resources, dict):
        registry = LocalResourceRegistry()
        for name, handler in resources.items():
            registry.register(name, handler)
        return registry
    if hasattr(resources, "invoke"):
        return resources
    if callable(resources):
        return CallableResourceInvoker(resources)
    raise TypeError(f"Unsupported resource invoker: {type(resources).__name__}")
