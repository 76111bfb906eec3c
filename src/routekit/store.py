"""
JSON-file configuration store.

A small persistent settings file for applications, addressed by dotted
keys:

    store = ConfigStore("settings.json")
    store.set("db.host", "localhost")
    store.get("db")              # {"host": "localhost"}
    store.get("db.port", 5432)   # 5432, key is missing
    store.add("db.host", "x")    # ConfigStoreError, key exists
    store.delete("db.host")

Every mutation rewrites the whole file. A file that is missing, unreadable
or does not hold a JSON object gives an empty store; the file is created
on the first write.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import copy
import json
import logging
import os


logger = logging.getLogger(__name__)

_MISSING = object()


class ConfigStoreError(Exception):
    """A mutation that cannot be applied to the store."""


class ConfigStore:
    """Dotted-key view over a JSON object file."""

    SEPARATOR = "."

    def __init__(self, path: Union[str, os.PathLike]):
        self.path = Path(path)
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable config file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {self.path}: not a JSON object")
            return {}
        return data

    def _commit(self, data: Dict[str, Any]) -> None:
        """Write data to the file, then make it the current state."""
        text = json.dumps(data, indent=4, ensure_ascii=False) + "\n"
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(text)
        self._data = data

    def _split(self, key: str) -> List[str]:
        if not isinstance(key, str) or not key:
            raise ConfigStoreError(f"Invalid key: {key!r}")
        parts = key.split(self.SEPARATOR)
        if any(not part for part in parts):
            raise ConfigStoreError(f"Invalid key: {key!r}")
        return parts

    def _lookup(self, parts: List[str]) -> Any:
        node: Any = self._data
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def _parent(
        self,
        root: Dict[str, Any],
        parts: List[str],
        create: bool,
    ) -> Tuple[Optional[Dict[str, Any]], str]:
        node = root
        for part in parts[:-1]:
            child = node.get(part, _MISSING)
            if child is _MISSING:
                if not create:
                    return None, parts[-1]
                child = node[part] = {}
            elif not isinstance(child, dict):
                raise ConfigStoreError(
                    f"Cannot descend into {part!r}: not an object"
                )
            node = child
        return node, parts[-1]

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def get(self, key: Optional[str] = None, default: Any = None) -> Any:
        """
        Look up a value. Without a key the whole store is returned.

        Values are deep copies; mutating them does not touch the store.
        """
        if key is None:
            return copy.deepcopy(self._data)
        value = self._lookup(self._split(key))
        if value is _MISSING:
            return default
        return copy.deepcopy(value)

    def has(self, key: str) -> bool:
        return self._lookup(self._split(key)) is not _MISSING

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def set(self, key: str, value: Any) -> "ConfigStore":
        """Create or replace a value, creating intermediate objects."""
        data = copy.deepcopy(self._data)
        parent, leaf = self._parent(data, self._split(key), create=True)
        parent[leaf] = value
        self._commit(data)
        return self

    def add(self, key: str, value: Any) -> "ConfigStore":
        """
        Create a value that must not exist yet.

        Raises:
            ConfigStoreError: If the key is already set.
        """
        if self.has(key):
            raise ConfigStoreError(f"Key already exists: {key!r}")
        return self.set(key, value)

    def delete(self, key: str) -> "ConfigStore":
        """
        Remove a value.

        Raises:
            ConfigStoreError: If the key is not set.
        """
        data = copy.deepcopy(self._data)
        parent, leaf = self._parent(data, self._split(key), create=False)
        if parent is None or leaf not in parent:
            raise ConfigStoreError(f"No such key: {key!r}")
        del parent[leaf]
        self._commit(data)
        return self
