# -*- coding: utf-8 -*-
"""
Key-Value Stores - Name-addressed backing stores for advisory caches.

Defines the ``KeyValueStore`` ABC whose only contract is
``exists`` / ``read`` / ``write`` over opaque byte payloads, plus two
implementations: ``FileStore`` (one file per key under a root directory)
and ``MemoryStore`` (a dict, for tests and in-process pipelines).

Caches built on these stores are accelerants only: an entry is created
lazily on first computation, preferred over recomputation afterwards, and
never invalidated automatically.

Author
------
orbreg developers

License
-------
MIT License
Copyright (c) 2024 geoint.org
See LICENSE file for full text.

Created
-------
2026-10-07

Modified
--------
2026-10-07
"""

# Standard library
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterator, Union


class KeyValueStore(ABC):
    """Abstract name-addressed byte store."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Whether an entry is stored under *key*."""
        ...

    @abstractmethod
    def read(self, key: str) -> bytes:
        """Return the payload stored under *key*.

        Raises
        ------
        KeyError
            If no entry exists for *key*.
        """
        ...

    @abstractmethod
    def write(self, key: str, payload: bytes) -> None:
        """Store *payload* under *key*, replacing any existing entry."""
        ...


class FileStore(KeyValueStore):
    """Store each key as a file beneath a root directory.

    Parameters
    ----------
    root : str or Path
        Directory holding the cache files. Created on first write.

    Examples
    --------
    >>> store = FileStore('/data/run1')
    >>> store.write('left.vwip', payload)
    >>> store.exists('left.vwip')
    True
    """

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        """Filesystem path backing *key*."""
        return self.root / key

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def read(self, key: str) -> bytes:
        path = self.path_for(key)
        if not path.is_file():
            raise KeyError(key)
        return path.read_bytes()

    def write(self, key: str, payload: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self.path_for(key).write_bytes(payload)

    def __repr__(self) -> str:
        return f"FileStore({str(self.root)!r})"


class MemoryStore(KeyValueStore):
    """In-memory store backed by a dict.

    Tracks read and write counts so tests can observe cache traffic.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, bytes] = {}
        self.reads = 0
        self.writes = 0

    def exists(self, key: str) -> bool:
        return key in self._entries

    def read(self, key: str) -> bytes:
        self.reads += 1
        return self._entries[key]

    def write(self, key: str, payload: bytes) -> None:
        self.writes += 1
        self._entries[key] = bytes(payload)

    def keys(self) -> Iterator[str]:
        """Iterate over stored keys."""
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
