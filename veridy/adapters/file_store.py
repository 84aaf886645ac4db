"""
JSON file key-value store.

SECURITY: the file holds private key material. It is written with owner
read/write permissions only and replaced atomically on every change.
"""

import json
import logging
import os
from pathlib import Path

from veridy.ports.key_value_store import IKeyValueStorePort

logger = logging.getLogger(__name__)


class JsonFileKeyValueStore(IKeyValueStorePort):
    """Values are kept as UTF-8 text in a flat JSON object."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        with open(self.path) as f:
            self._data = json.load(f)
        logger.debug(f"Loaded {len(self._data)} entries from {self.path}")

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w") as f:
            json.dump(self._data, f, indent=2, sort_keys=True)
        # Set restrictive permissions (owner read/write only)
        tmp.chmod(0o600)
        os.replace(tmp, self.path)

    def get(self, key: str) -> bytes | None:
        value = self._data.get(key)
        return value.encode() if value is not None else None

    def put(self, key: str, value: bytes) -> None:
        self._data[key] = value.decode()
        self._save()

    def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()

    def keys(self, prefix: str = "") -> list[str]:
        return [k for k in self._data if k.startswith(prefix)]
