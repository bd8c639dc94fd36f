"""Name-based dependency injection container.

This package provides a small dependency injection container for Python that
maps string identifiers to instances, constructors and factories, and wires
constructor/function parameters by matching parameter names to identifiers.

Exports:
- `Container`: Main DI container (bind, alias, get, construct, invoke).
- `Scope`: Scoped container that resolves within itself first, then falls back
  to a parent container. Useful for per-request or per-test lifetimes.
- `UNSET`: Marker for a parameter value nobody supplied.
- `UnknownIdentifierError`: Raised when resolving an unregistered identifier.
- `extract_parameter_names`: Parameter names of a callable or signature text.
"""

from ._container import Container, Scope, UnknownIdentifierError
from ._signature import UNSET, extract_parameter_names


__all__ = ["UNSET", "Container", "Scope", "UnknownIdentifierError", "extract_parameter_names"]
