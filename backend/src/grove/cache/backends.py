"""Key/value stores for index snapshots."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from grove.constants import CACHE_FILE_SUFFIX


class CacheBackend(Protocol):
    """Opaque JSON-serialisable value store."""

    def fetch(self, key: str) -> Any | None: ...

    def save(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class FileCacheBackend:
    """Stores each value as a JSON file in a cache directory.

    Writes go to a temporary file in the same directory that then replaces
    the target, so readers never see a half written snapshot.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}{CACHE_FILE_SUFFIX}"

    def fetch(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def save(self, key: str, value: Any) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class MemoryCacheBackend:
    """In-process store; values are kept as JSON text like the file backend."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def fetch(self, key: str) -> Any | None:
        raw = self._values.get(key)
        return json.loads(raw) if raw is not None else None

    def save(self, key: str, value: Any) -> None:
        self._values[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)
