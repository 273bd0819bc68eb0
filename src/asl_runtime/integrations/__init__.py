"""External integrations"""

from .resources import (
    CallableResourceInvoker,
    LocalResourceRegistry,
    ResourceDefinition,
    ResourceInvoker,
    as_invoker,
)

__all__ = [
    "CallableResourceInvoker",
    "LocalResourceRegistry",
    "ResourceDefinition",
    "ResourceInvoker",
    "as_invoker",
]
