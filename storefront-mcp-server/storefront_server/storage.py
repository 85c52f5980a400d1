"""Durable key-value storage for cart and sales state."""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from .errors import CorruptPersistedState

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """String key-value storage with JSON helpers.

    Values are stored as serialized strings, so a payload can be corrupt
    independently of the store that holds it. A failed write leaves every
    key as it was.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def set_many(self, values: dict[str, str]) -> None:
        """Store several keys in one write; either all change or none do."""

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def load_json(self, key: str) -> Any:
        """
        Decode the JSON payload stored under key.

        Returns:
            The decoded value, or None if nothing is stored

        Raises:
            CorruptPersistedState: If the payload is not valid JSON
        """
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise CorruptPersistedState(key, e) from e

    def save_json(self, key: str, value: Any) -> None:
        """Serialize value as JSON and store it under key."""
        self.save_json_many({key: value})

    def save_json_many(self, values: dict[str, Any]) -> None:
        """Serialize several values as JSON and store them in one write."""
        self.set_many({key: json.dumps(value, default=str) for key, value in values.items()})


class MemoryStore(KeyValueStore):
    """Process-local store; nothing survives a restart."""

    def __init__(self, data: Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set_many(self, values: dict[str, str]) -> None:
        self.data.update(values)


class JsonFileStore(KeyValueStore):
    """Stores every key in a single JSON file, rewritten on each change."""

    def __init__(self, state_file: Optional[str] = None) -> None:
        """
        Initialize the file store.

        Args:
            state_file: Path to the state file. Defaults to ~/.storefront_state.json
        """
        if state_file is None:
            state_file = str(Path.home() / ".storefront_state.json")
        self.state_file = state_file
        self.data: dict[str, str] = self._load_file()

    def _load_file(self) -> dict[str, str]:
        """Load stored values from file if it exists."""
        if os.path.exists(self.state_file):
            try:
                with open(self.state_file, "r") as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    logger.info(f"Loaded storefront state from {self.state_file}")
                    return {str(k): v for k, v in data.items() if isinstance(v, str)}
                logger.warning(f"Ignoring state file with unexpected layout: {self.state_file}")
            except (json.JSONDecodeError, OSError, ValueError) as e:
                # If file is corrupted, start fresh
                logger.warning(f"Could not load state file {self.state_file}: {e}")
        return {}

    def _save_file(self, data: dict[str, str]) -> None:
        """Write all stored values to file, replacing it atomically."""
        tmp_file = f"{self.state_file}.tmp"
        try:
            with open(tmp_file, "w") as f:
                json.dump(data, f, indent=2)
            os.chmod(tmp_file, 0o600)
            os.replace(tmp_file, self.state_file)
        except OSError as e:
            logger.error(f"Could not save state to {self.state_file}: {e}")
            raise

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set_many(self, values: dict[str, str]) -> None:
        data = {**self.data, **values}
        self._save_file(data)
        self.data = data
