"""
Ordered, case-insensitive header multimap

Keeps headers in the order they were received and allows repeated names, which
is what both curl's ``-H`` arguments and raw inbound requests look like. Names
are matched case-insensitively but stored with their original spelling.
"""

from typing import Iterable, Iterator, List, Mapping, Optional, Union

from .types import HeaderPair


def _matches(name: str, other: str) -> bool:
    return name.lower() == other.lower()


class HeaderList:
    """Ordered multimap of HTTP headers."""

    def __init__(self, pairs: Optional[Union[Iterable[HeaderPair], Mapping[str, str]]] = None):
        self._items: List[HeaderPair] = []
        if pairs is None:
            return
        if hasattr(pairs, "items"):
            pairs = pairs.items()
        for name, value in pairs:
            self.add(name, value)

    def add(self, name: str, value: str) -> None:
        """Append a header, keeping any existing ones with the same name."""
        self._items.append((name, value))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value for ``name``."""
        for key, value in self._items:
            if _matches(key, name):
                return value
        return default

    def get_all(self, name: str) -> List[str]:
        return [value for key, value in self._items if _matches(key, name)]

    def set(self, name: str, value: str) -> None:
        """
        Upsert a header.

        The first existing occurrence is replaced in place (so ordering is
        preserved), later duplicates are dropped, and the header is appended
        when absent.
        """
        updated: List[HeaderPair] = []
        replaced = False
        for key, existing in self._items:
            if _matches(key, name):
                if not replaced:
                    updated.append((name, value))
                    replaced = True
                continue
            updated.append((key, existing))
        if not replaced:
            updated.append((name, value))
        self._items = updated

    def extract(self, name: str) -> Optional[str]:
        """
        Remove every occurrence of ``name`` and return the first value.

        Returns None when the header is not present.
        """
        value = self.get(name)
        self.remove(name)
        return value

    def remove(self, name: str) -> int:
        before = len(self._items)
        self._items = [(k, v) for k, v in self._items if not _matches(k, name)]
        return before - len(self._items)

    def remove_prefix(self, prefix: str) -> int:
        """Remove every header whose name starts with ``prefix``; returns the count."""
        prefix = prefix.lower()
        before = len(self._items)
        self._items = [(k, v) for k, v in self._items if not k.lower().startswith(prefix)]
        return before - len(self._items)

    def with_prefix(self, prefix: str) -> List[HeaderPair]:
        prefix = prefix.lower()
        return [(k, v) for k, v in self._items if k.lower().startswith(prefix)]

    def items(self) -> List[HeaderPair]:
        return list(self._items)

    def copy(self) -> 'HeaderList':
        return HeaderList(self._items)

    def __iter__(self) -> Iterator[HeaderPair]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return any(_matches(key, name) for key, _ in self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, HeaderList):
            return self._items == other._items
        return NotImplemented

    def __repr__(self) -> str:
        return f"HeaderList({self._items!r})"
