"""Cache digest and snapshot load/store."""

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any

from grove.cache.backends import CacheBackend
from grove.cache.signals import storage_signal
from grove.constants import DEFAULT_CHECK_METHOD, DELEGATED_CACHE_PREFIX
from grove.storage.base import Storage

logger = logging.getLogger(__name__)


@dataclass
class Snapshot:
    """Serialised index: instances, routes, children, taxonomy and sort cache.

    Persisted as a six element JSON list headed by the format version.
    """

    format_version: str
    instances: dict[str, dict[str, Any]] = field(default_factory=dict)
    routes: dict[str, str] = field(default_factory=dict)
    children: dict[str, dict[str, dict]] = field(default_factory=dict)
    taxonomy: dict[str, Any] = field(default_factory=dict)
    sort: dict[str, dict[str, list[str]]] = field(default_factory=dict)

    def to_payload(self) -> list[Any]:
        return [
            self.format_version,
            self.instances,
            self.routes,
            self.children,
            self.taxonomy,
            self.sort,
        ]

    @classmethod
    def from_payload(cls, payload: Any) -> "Snapshot":
        """Rebuild a snapshot from its JSON form.

        Raises:
            ValueError: If the payload is not a six element list of the
                expected shapes.
        """
        if not isinstance(payload, list) or len(payload) != 6:
            raise ValueError("Snapshot payload must be a list of six elements")
        version, instances, routes, children, taxonomy, sort = payload
        if not isinstance(version, str):
            raise ValueError("Snapshot format version must be a string")
        for name, value in (
            ("instances", instances),
            ("routes", routes),
            ("children", children),
            ("taxonomy", taxonomy),
            ("sort", sort),
        ):
            if not isinstance(value, dict):
                raise ValueError(f"Snapshot {name} must be a mapping")
        return cls(version, instances, routes, children, taxonomy, sort)


class CacheManager:
    """Decides whether a stored index snapshot is still valid.

    The cache id digests everything the index depends on: the content root,
    the storage change signal, the active language and the configuration.
    A snapshot is reused only under the same id and format version.
    """

    def __init__(
        self,
        backend: CacheBackend | None,
        storage: Storage,
        check_method: str = DEFAULT_CHECK_METHOD,
        enabled: bool = True,
    ) -> None:
        self.backend = backend
        self.storage = storage
        self.check_method = check_method
        self.enabled = enabled and backend is not None

    def cache_id(self, root: str, language: str, config_checksum: str) -> str:
        signal = storage_signal(self.storage, root, self.check_method)
        payload = f"{root}{signal}{language}{config_checksum}"
        return hashlib.md5(payload.encode("utf-8")).hexdigest()

    @staticmethod
    def delegated_cache_id(checksum: str, language: str, config_checksum: str) -> str:
        payload = f"{checksum}{language}{config_checksum}"
        return DELEGATED_CACHE_PREFIX + hashlib.md5(payload.encode("utf-8")).hexdigest()

    def load(self, cache_id: str, format_version: str) -> Snapshot | None:
        """Fetch a snapshot, or None on miss, version mismatch or failure."""
        if not self.enabled or self.backend is None:
            return None
        try:
            payload = self.backend.fetch(cache_id)
        except Exception as e:
            logger.error(f"Failed to read page cache {cache_id}: {e}")
            return None
        if payload is None:
            return None

        try:
            snapshot = Snapshot.from_payload(payload)
        except ValueError as e:
            logger.warning(f"Discarding corrupt page cache {cache_id}: {e}")
            return None

        if snapshot.format_version != format_version:
            logger.info(
                f"Discarding page cache {cache_id}: format {snapshot.format_version!r}, "
                f"expected {format_version!r}"
            )
            return None
        return snapshot

    def store(self, cache_id: str, snapshot: Snapshot) -> bool:
        """Persist a snapshot. Backend failures are logged, never raised."""
        if not self.enabled or self.backend is None:
            return False
        try:
            self.backend.save(cache_id, snapshot.to_payload())
        except Exception as e:
            logger.error(f"Failed to write page cache {cache_id}: {e}")
            return False
        return True

    def invalidate(self, cache_id: str) -> None:
        if self.backend is None:
            return
        try:
            self.backend.delete(cache_id)
        except Exception as e:
            logger.error(f"Failed to delete page cache {cache_id}: {e}")
