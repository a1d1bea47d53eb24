from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, TypeVar


if TYPE_CHECKING:
    from collections.abc import Callable

    Token = type | str
    Delegate = Callable[["Resolver"], object]

T = TypeVar("T")


class Lifetime(Enum):
    SINGLETON = "singleton"
    TRANSIENT = "transient"


class Resolver(Protocol):
    """What a factory receives: the provider resolving the current request."""

    def get(self, token: Any) -> Any: ...

    def inject(self, target: T) -> T: ...

    def is_registered(self, token: Any) -> bool: ...


@dataclass(frozen=True)
class Dependency:
    """One registration: the tokens it satisfies, how to build it and how long it lives.

    Attributes:
        types: Tokens this registration answers to, in order and without duplicates.
        factory: Callable taking the resolver and returning an instance.
        lifetime: Singleton (cached per provider) or transient (built per request).
    """

    types: tuple[Any, ...]
    factory: Delegate
    lifetime: Lifetime = Lifetime.SINGLETON

    def __post_init__(self) -> None:
        types = tuple(dict.fromkeys(self.types))
        if not types:
            msg = "A dependency must satisfy at least one type."
            raise ValueError(msg)
        if not callable(self.factory):
            msg = f"Dependency factory must be callable, got {self.factory!r}"
            raise ValueError(msg)
        object.__setattr__(self, "types", types)

    @property
    def is_singleton(self) -> bool:
        return self.lifetime is Lifetime.SINGLETON
