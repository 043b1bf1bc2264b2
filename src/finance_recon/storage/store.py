"""
Key-value store collaborators.

The engine persists three JSON collections under fixed keys and reads them
back once at startup. Implementations raise StorageError on failure.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Union
import copy
import json
import logging
import os
import tempfile

from ..utils.exceptions import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract interface for JSON document storage keyed by name."""

    @abstractmethod
    def load(self, key: str) -> Optional[Any]:
        """
        Load the document stored under ``key``.

        Returns:
            The decoded JSON value, or None if nothing is stored

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def save(self, key: str, value: Any) -> None:
        """
        Overwrite the document stored under ``key``.

        Raises:
            StorageError: If the backend cannot be written
        """
        pass


class InMemoryStore(KeyValueStore):
    """Process-local store, used by tests and dry runs."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = copy.deepcopy(initial or {})

    def load(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    def save(self, key: str, value: Any) -> None:
        # Round-trip through JSON so callers get the same failures a file store gives
        try:
            self._data[key] = json.loads(json.dumps(value))
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key!r} is not JSON serializable: {e}") from e


class JsonFileStore(KeyValueStore):
    """All keys live in one JSON object on disk, replaced atomically on save."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self, key: str) -> Optional[Any]:
        return self._read().get(key)

    def save(self, key: str, value: Any) -> None:
        document = self._read()
        document[key] = value

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, ensure_ascii=False)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {self.path}: {e}") from e

        logger.debug(f"Saved {key!r} to {self.path}")

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {self.path}: {e}") from e

        if not isinstance(document, dict):
            raise StorageError(f"Store file {self.path} does not hold a JSON object")
        return document
