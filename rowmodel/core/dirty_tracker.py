"""
Per-instance record of attributes modified since creation or last load.
"""

from typing import FrozenSet, Iterator, Set


class DirtyTracker:
    """Set of attribute names whose setter ran since the last load or save."""

    def __init__(self):
        self._names: Set[str] = set()

    def mark_modified(self, name: str) -> None:
        self._names.add(name)

    def is_modified(self) -> bool:
        return bool(self._names)

    def modified_attributes(self) -> FrozenSet[str]:
        return frozenset(self._names)

    def clear(self) -> None:
        self._names.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"DirtyTracker({sorted(self._names)})"
