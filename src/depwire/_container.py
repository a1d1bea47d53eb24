from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, TypeVar, overload

from ._collection import DependencyCollection
from ._dependency import Dependency, Lifetime
from ._errors import RegistrationError
from ._factory import create, from_instance, from_template, from_type
from ._provider import Provider
from ._validation import capabilities_of, is_concrete, satisfies, validate_impl


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from ._dependency import Resolver, Token

    T = TypeVar("T")


class Container:
    """Registration surface of the DI container.

    - register classes (auto-wired), factories, instances and external templates
    - multi-bind every implementation of a capability with `register_all`
    - `make()` freezes the registrations into a `Provider`.
    """

    def __init__(self, collection: DependencyCollection | None = None) -> None:
        self._collection = collection if collection is not None else DependencyCollection()
        self._templates: list[Dependency] = []
        self._validity_checks: dict[type, Callable[[Any], bool]] = {}

    @property
    def collection(self) -> DependencyCollection:
        return self._collection

    @overload
    def register(self, token: type[T], impl: None = ..., *, lifetime: Lifetime = Lifetime.SINGLETON) -> None: ...

    @overload
    def register(self, token: type[T], impl: type[T], *, lifetime: Lifetime = Lifetime.SINGLETON) -> None: ...

    @overload
    def register(self, token: str, impl: type, *, lifetime: Lifetime = Lifetime.SINGLETON) -> None: ...

    def register(
        self,
        token: Token,
        impl: type | None = None,
        *,
        lifetime: Lifetime = Lifetime.SINGLETON,
    ) -> None:
        """Register a class, auto-wired through its constructor.

        The class answers to itself and every base it declares. Passing a
        capability first also validates the implementation against it.

        Example:
          container.register(SqlRepo)
          container.register(Repo, SqlRepo, lifetime=Lifetime.TRANSIENT)

        """
        if impl is None:
            if not inspect.isclass(token):
                msg = f"register() with a single argument expects a class, got {token!r}"
                raise RegistrationError(msg)
            impl = token

        # Non-type tokens (like strings) cannot be validated.
        if inspect.isclass(token):
            validate_impl(token, impl)

        types: list[Any] = [impl, *capabilities_of(impl)]
        if token not in types:
            types.append(token)

        self._collection.add(Dependency(tuple(types), from_type(impl), lifetime))

    def register_all(
        self,
        capability: type,
        candidates: Iterable[type] | None = None,
        *,
        lifetime: Lifetime = Lifetime.SINGLETON,
    ) -> None:
        """Multi-bind every concrete class satisfying `capability`.

        Each match is registered under `capability` only, so it is reachable
        through ``list[capability]`` and not by its own class. Without
        `candidates`, every loaded subclass of `capability` is considered.
        """
        if candidates is None:
            candidates = _subclasses(capability)

        for candidate in candidates:
            if candidate is capability or not is_concrete(candidate) or not satisfies(capability, candidate):
                continue
            self._collection.add(Dependency((capability,), from_type(candidate), lifetime))

    def register_factory(
        self,
        factory: Callable[[Resolver], Any],
        *tokens: Token,
        lifetime: Lifetime = Lifetime.SINGLETON,
        inject: bool = False,
    ) -> None:
        """Register ``factory(resolver)`` under one or more tokens.

        Example:
          container.register_factory(lambda r: Engine(r.get(Config)), Engine, "engine")

        """
        if not tokens:
            msg = "register_factory() needs at least one token"
            raise ValueError(msg)
        self._collection.add(Dependency(tokens, create(factory, inject=inject), lifetime))

    def register_instance(self, instance: object, *tokens: Token, inject: bool = False) -> None:
        """Register a pre-built instance (always singleton).

        Without explicit tokens it answers to its class and every base.
        """
        for token in tokens:
            if inspect.isclass(token):
                validate_impl(token, type(instance))

        types = tokens or _default_tokens(instance)
        self._collection.add(Dependency(types, from_instance(instance, inject=inject), Lifetime.SINGLETON))

    def add_template(
        self,
        template: T,
        instancer: Callable[[T, Resolver], Any],
        *tokens: Token,
        lifetime: Lifetime = Lifetime.SINGLETON,
    ) -> None:
        """Queue an externally owned template; `make()` appends it to the collection.

        `instancer(template, resolver)` builds each instance, the container never
        inspects how.
        """
        types = tokens or _default_tokens(template)
        self._templates.append(Dependency(types, from_template(template, instancer), lifetime))

    def add_validity_check(self, cls: type, predicate: Callable[[Any], bool]) -> None:
        """Tell providers how to detect that a cached `cls` singleton was destroyed elsewhere."""
        self._validity_checks[cls] = predicate

    def make(self) -> Provider:
        for dependency in self._templates:
            self._collection.add(dependency)

        return Provider(self._collection, validity_checks=self._validity_checks)


def _default_tokens(instance: object) -> tuple[type, ...]:
    cls = type(instance)
    return (cls, *capabilities_of(cls))


def _subclasses(cls: type) -> Iterator[type]:
    seen: set[type] = set()
    stack = list(reversed(type.__subclasses__(cls)))
    while stack:
        sub = stack.pop()
        if sub in seen:
            continue
        seen.add(sub)
        yield sub
        stack.extend(reversed(type.__subclasses__(sub)))
