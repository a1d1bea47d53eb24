from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Iterator

    from ._dependency import Dependency


class DependencyCollection:
    """Insertion-ordered set of `Dependency` records.

    Filled during registration and consumed once to build a `Provider`. There is
    no removal; adding a record equal to one already present does nothing.
    """

    def __init__(self) -> None:
        self._dependencies: list[Dependency] = []

    def add(self, dependency: Dependency) -> None:
        if dependency in self._dependencies:
            return
        self._dependencies.append(dependency)

    def __iter__(self) -> Iterator[Dependency]:
        return iter(tuple(self._dependencies))

    def __len__(self) -> int:
        return len(self._dependencies)

    def __contains__(self, dependency: object) -> bool:
        return dependency in self._dependencies

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._dependencies!r})"
