"""Small dependency injection container.

Registrations are collected by a `Container` and frozen into a `Provider` that
resolves single instances, multi-bindings (``list[Capability]``) and field
injection, with singleton or transient lifetimes.

Exports:
- `Container`: registration surface; `make()` builds a `Provider`.
- `Provider`: resolver with `get`, `get_all` and `inject`.
- `Inject`: marker for ``Annotated[T, Inject]`` injectable attributes.
- `Lifetime`: singleton or transient.
- `Dependency`, `DependencyCollection`: the registration records and their ordered set.
- `from_type`, `create`, `from_template`, `from_instance`: factory builders.
"""

from ._collection import DependencyCollection
from ._container import Container
from ._dependency import Dependency, Lifetime, Resolver
from ._errors import (
    ConstructionError,
    CyclicDependencyError,
    RegistrationError,
    ResolutionError,
    UnregisteredTypeError,
)
from ._factory import create, from_instance, from_template, from_type
from ._provider import Inject, Provider


__all__ = [
    "ConstructionError",
    "Container",
    "CyclicDependencyError",
    "Dependency",
    "DependencyCollection",
    "Inject",
    "Lifetime",
    "Provider",
    "RegistrationError",
    "ResolutionError",
    "Resolver",
    "UnregisteredTypeError",
    "create",
    "from_instance",
    "from_template",
    "from_type",
]
