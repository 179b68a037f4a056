"""Page index cache: storage change signal, digest and snapshot persistence."""

from grove.cache.backends import CacheBackend, FileCacheBackend, MemoryCacheBackend
from grove.cache.manager import CacheManager, Snapshot
from grove.cache.signals import storage_signal

__all__ = [
    "CacheBackend",
    "CacheManager",
    "FileCacheBackend",
    "MemoryCacheBackend",
    "Snapshot",
    "storage_signal",
]
