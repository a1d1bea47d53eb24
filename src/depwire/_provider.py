from __future__ import annotations

import collections.abc
import inspect
import logging
import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    ForwardRef,
    TypeVar,
    get_args,
    get_origin,
    overload,
)

from ._errors import CyclicDependencyError, UnregisteredTypeError, token_name


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Mapping

    from ._dependency import Dependency

    T = TypeVar("T")


logger = logging.getLogger(__name__)

_MISSING = object()

_COLLECTION_ORIGINS = frozenset(
    {
        list,
        tuple,
        collections.abc.Sequence,
        collections.abc.Iterable,
        collections.abc.Collection,
    }
)


@dataclass(frozen=True)
class Inject:
    """Marks an attribute annotation for field injection.

    Example:
      class Widget:
          repo: Annotated[Repo, Inject]
          cache: Annotated[object, Inject("cache")]

    """

    token: Any = None


def collection_item(token: Any) -> Any:
    """Return `C` when `token` asks for every registration of `C`, else `_MISSING`."""
    origin = get_origin(token)
    if origin not in _COLLECTION_ORIGINS:
        return _MISSING

    args = get_args(token)
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:  # noqa: PLR2004
            return args[0]
        return _MISSING

    return args[0] if len(args) == 1 else _MISSING


class Provider:
    """Resolves instances from a frozen set of registrations.

    - single requests: first registration wins
    - ``list[C]`` / ``tuple[C, ...]`` / ``Sequence[C]`` requests: every registration of C
    - singletons cached per requested token, rebuilt when found invalid
    - field injection through ``Annotated[T, Inject]`` annotations.
    """

    def __init__(
        self,
        dependencies: Iterable[Dependency],
        *,
        validity_checks: Mapping[type, Callable[[Any], bool]] | None = None,
    ) -> None:
        self._by_type: dict[Any, list[Dependency]] = {}
        self._singletons: dict[Any, Any] = {}
        self._validity_checks = dict(validity_checks or {})
        self._injection_plans: dict[type, list[tuple[str, Any]]] = {}
        self._resolving: list[Any] = []
        self._lock = threading.RLock()

        count = 0
        for dependency in dependencies:
            count += 1
            for token in dependency.types:
                self._by_type.setdefault(token, []).append(dependency)

        logger.debug("Provider built from %d dependencies covering %d tokens", count, len(self._by_type))

    def is_registered(self, token: Any) -> bool:
        if collection_item(token) is not _MISSING:
            return True
        return bool(self._by_type.get(token))

    @overload
    def get(self, token: type[T]) -> T: ...

    @overload
    def get(self, token: str) -> Any: ...

    @overload
    def get(self, token: Any) -> Any: ...

    def get(self, token: Any) -> Any:
        """Resolve one instance for `token`.

        Raises:
            UnregisteredTypeError: nothing is registered for `token`.
            CyclicDependencyError: `token` is already being resolved further up the stack.
        """
        with self._lock:
            item = collection_item(token)
            if item is not _MISSING:
                with self._guard(token):
                    instances = [dependency.factory(self) for dependency in self._by_type.get(item, ())]
                return tuple(instances) if get_origin(token) is tuple else instances

            candidates = self._by_type.get(token)
            if not candidates:
                raise UnregisteredTypeError(token)

            # Ambiguous single requests resolve to the first registration.
            dependency = candidates[0]

            if not dependency.is_singleton:
                with self._guard(token):
                    return dependency.factory(self)

            cached = self._singletons.get(token, _MISSING)
            if cached is not _MISSING:
                if self._is_valid(cached):
                    return cached
                logger.warning(
                    "Cached singleton for %s is no longer valid; discarding and rebuilding it", token_name(token)
                )
                del self._singletons[token]

            with self._guard(token):
                instance = dependency.factory(self)
            self._singletons[token] = instance
            return instance

    def get_all(self, capability: type[T]) -> list[T]:
        return self.get(list[capability])  # type: ignore[valid-type]

    def inject(self, target: T) -> T:
        """Assign every ``Annotated[..., Inject]`` attribute of `target`, base classes included.

        Fields are assigned one by one; a failure leaves earlier fields assigned.
        """
        with self._lock:
            for name, token in self._injection_plan(type(target)):
                setattr(target, name, self.get(token))
        return target

    @contextmanager
    def _guard(self, token: Any) -> Iterator[None]:
        if token in self._resolving:
            raise CyclicDependencyError([*self._resolving[self._resolving.index(token) :], token])

        self._resolving.append(token)
        try:
            yield
        finally:
            self._resolving.pop()

    def _is_valid(self, instance: Any) -> bool:
        for cls in type(instance).__mro__:
            check = self._validity_checks.get(cls)
            if check is not None:
                return bool(check(instance))
        return True

    def _injection_plan(self, cls: type) -> list[tuple[str, Any]]:
        plan = self._injection_plans.get(cls)
        if plan is None:
            plan = _build_injection_plan(cls)
            self._injection_plans[cls] = plan
        return plan


def _build_injection_plan(cls: type) -> list[tuple[str, Any]]:
    plan: list[tuple[str, Any]] = []
    seen: set[str] = set()

    for klass in cls.__mro__:
        if klass is object:
            continue

        for name, annotation in _declared_annotations(klass).items():
            if name in seen:
                continue
            seen.add(name)

            token = _injection_token(klass, annotation)
            if token is not _MISSING:
                plan.append((name, token))

    return plan


def _declared_annotations(klass: type) -> dict[str, Any]:
    try:
        return inspect.get_annotations(klass)
    except NameError:
        # Deferred annotations (3.14+) naming something that only exists for type checkers.
        import annotationlib  # noqa: PLC0415

        return annotationlib.get_annotations(klass, format=annotationlib.Format.STRING)


def _evaluate(klass: type, annotation: Any) -> Any:
    if isinstance(annotation, ForwardRef):
        annotation = annotation.__forward_arg__
    if not isinstance(annotation, str):
        return annotation

    module = sys.modules.get(klass.__module__)
    globalns = dict(vars(module)) if module is not None else {}
    return eval(annotation, globalns, dict(vars(klass)))  # noqa: S307


def _injection_token(klass: type, annotation: Any) -> Any:
    """Return what a marked attribute should be resolved as, or `_MISSING` when it is unmarked.

    An unmarked annotation naming something missing at runtime (a ``TYPE_CHECKING``
    import, say) is skipped; a marked one that cannot be evaluated raises `NameError`.
    """
    try:
        hint = _evaluate(klass, annotation)
    except NameError:
        if isinstance(annotation, str) and "Inject" not in annotation:
            return _MISSING
        raise

    if get_origin(hint) is not Annotated:
        return _MISSING

    base, *metadata = get_args(hint)
    for marker in metadata:
        if marker is Inject:
            return _evaluate(klass, base)
        if isinstance(marker, Inject):
            return _evaluate(klass, base) if marker.token is None else marker.token

    return _MISSING
