from __future__ import annotations

from typing import TYPE_CHECKING, Any, get_origin


if TYPE_CHECKING:
    from collections.abc import Sequence


def token_name(token: Any) -> str:
    """Readable name for a class, string or generic alias token."""
    if isinstance(token, str):
        return repr(token)
    if isinstance(token, type) and get_origin(token) is None:
        return f"{token.__module__}.{token.__qualname__}"
    return repr(token)


class ResolutionError(RuntimeError):
    pass


class UnregisteredTypeError(ResolutionError, LookupError):
    def __init__(self, token: Any) -> None:
        super().__init__(f"Type is not a dependency: {token_name(token)}")
        self.token = token


class ConstructionError(ResolutionError):
    def __init__(self, cls: type, reason: str) -> None:
        super().__init__(f"Failed to construct '{token_name(cls)}': {reason}")
        self.type = cls


class CyclicDependencyError(ResolutionError):
    def __init__(self, chain: Sequence[Any]) -> None:
        path = " -> ".join(token_name(token) for token in chain)
        super().__init__(f"Cyclic dependency detected: {path}")
        self.chain = tuple(chain)


class RegistrationError(TypeError):
    """Raised when an implementation does not satisfy the capability it is registered for."""
