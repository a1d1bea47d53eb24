"""Factories turning a class, a function or an external object into a `Delegate`.

Every helper returns a small frozen dataclass with a ``__call__(resolver)``. Factories
built from the same class or function compare equal, so a collection can drop the
duplicate registration; instance and template factories compare their object by
identity, never by value.
"""

from __future__ import annotations

import inspect
import logging
import types
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar, Union, get_args, get_origin, get_type_hints

from ._errors import ConstructionError


if TYPE_CHECKING:
    from collections.abc import Callable

    from ._dependency import Resolver


logger = logging.getLogger(__name__)

T = TypeVar("T")

_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


@dataclass(frozen=True)
class TypeFactory(Generic[T]):
    impl: type[T]

    def __call__(self, resolver: Resolver) -> T:
        return Constructor(resolver).construct(self.impl)


@dataclass(frozen=True)
class FunctionFactory(Generic[T]):
    func: Callable[[Resolver], T]
    inject: bool = False

    def __call__(self, resolver: Resolver) -> T:
        instance = self.func(resolver)
        if self.inject:
            resolver.inject(instance)
        return instance


@dataclass(frozen=True, eq=False)
class TemplateFactory(Generic[T]):
    template: T
    instancer: Callable[[T, Resolver], Any]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TemplateFactory):
            return NotImplemented
        return self.template is other.template and self.instancer == other.instancer

    def __hash__(self) -> int:
        return hash((id(self.template), self.instancer))

    def __call__(self, resolver: Resolver) -> Any:
        return self.instancer(self.template, resolver)


@dataclass(frozen=True, eq=False)
class InstanceFactory(Generic[T]):
    instance: T
    inject: bool = True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InstanceFactory):
            return NotImplemented
        return self.instance is other.instance and self.inject == other.inject

    def __hash__(self) -> int:
        return hash((id(self.instance), self.inject))

    def __call__(self, resolver: Resolver) -> T:
        if self.inject:
            resolver.inject(self.instance)
        return self.instance


def from_type(impl: type[T]) -> TypeFactory[T]:
    """Auto-wire `impl`: resolve each constructor parameter through the resolver."""
    if not inspect.isclass(impl):
        msg = f"from_type() expects a class, got {impl!r}"
        raise TypeError(msg)
    return TypeFactory(impl)


def create(func: Callable[[Resolver], T], *, inject: bool = False) -> FunctionFactory[T]:
    """Wrap a user factory; with ``inject=True`` its result gets field injection."""
    if not callable(func):
        msg = f"create() expects a callable, got {func!r}"
        raise TypeError(msg)
    return FunctionFactory(func, inject)


def from_template(template: T, instancer: Callable[[T, Resolver], Any]) -> TemplateFactory[T]:
    """Delegate instantiation of `template` to `instancer(template, resolver)`.

    Whatever the instancer returns is handed to the caller unmodified.
    """
    return TemplateFactory(template, instancer)


def from_instance(instance: T, *, inject: bool = True) -> InstanceFactory[T]:
    """Serve an already built object, injecting its marked fields on every request."""
    return InstanceFactory(instance, inject)


class Constructor:
    def __init__(self, resolver: Resolver) -> None:
        self._resolver = resolver

    def construct(self, cls: type[T]) -> T:
        if inspect.isabstract(cls):
            raise ConstructionError(cls, "class is abstract")

        try:
            sig = inspect.signature(cls)
        except (TypeError, ValueError) as e:
            return self._default_construct(cls, e)

        hints = _get_init_type_hints(cls)
        args, kwargs = [], {}

        for name, p in sig.parameters.items():
            if p.kind in _VARIADIC:
                continue

            value = self._resolve_param(cls, name, p, hints)
            if p.kind is p.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[name] = value

        return cls(*args, **kwargs)

    def _default_construct(self, cls: type[T], reason: Exception) -> T:
        logger.debug("No signature for %s (%s), falling back to default construction", cls.__qualname__, reason)
        try:
            return cls()
        except TypeError as e:
            raise ConstructionError(cls, "no usable constructor and default construction failed") from e

    def _resolve_param(
        self,
        cls: type,
        name: str,
        p: inspect.Parameter,
        hints: dict[str, Any],
    ) -> Any:
        """Resolve one constructor parameter.

        Resolution precedence:
        1. registered annotation, or the registered `B` of an ``Optional[B]`` annotation
        2. name-based registration
        3. default
        4. annotation anyway, so the missing type is what gets reported
        5. error.
        """
        ann = _unwrap_optional(hints.get(name, inspect.Parameter.empty))
        annotated = ann is not inspect.Parameter.empty

        if annotated and self._resolver.is_registered(ann):
            return self._resolver.get(ann)

        if self._resolver.is_registered(name):
            return self._resolver.get(name)

        if p.default is not inspect.Parameter.empty:
            return p.default

        if annotated:
            return self._resolver.get(ann)

        msg = f"cannot satisfy constructor parameter '{name}' (no annotation, registration or default)"
        raise ConstructionError(cls, msg)


def _unwrap_optional(ann: Any) -> Any:
    if get_origin(ann) not in (Union, types.UnionType):
        return ann

    members = [arg for arg in get_args(ann) if arg is not type(None)]
    return members[0] if len(members) == 1 else ann


def _get_init_type_hints(cls: type) -> dict[str, Any]:
    try:
        init = inspect.getattr_static(cls, "__init__")
        hints = get_type_hints(init)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s (%s) type hints", exc.name, cls.__name__, cls.__qualname__)
        hints = {}

    hints.pop("return", None)
    return hints
