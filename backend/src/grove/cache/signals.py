"""Storage change signals.

A signal is a cheap value that changes whenever the content tree changes.
It feeds the cache digest, so a changed tree never reuses a stale snapshot.
"""

import hashlib
import logging

from grove.constants import DEFAULT_CHECK_METHOD
from grove.storage.base import Storage

logger = logging.getLogger(__name__)


def last_modified_file(storage: Storage, root: str) -> int:
    """Most recent modification time of any file under ``root``."""
    latest = 0
    for _, _, files in storage.walk(root):
        for entry in files:
            latest = max(latest, entry.mtime)
    return latest


def last_modified_folder(storage: Storage, root: str) -> int:
    """Most recent modification time of ``root`` or any folder below it."""
    latest = storage.mtime(root)
    for _, dirs, _ in storage.walk(root):
        for entry in dirs:
            latest = max(latest, entry.mtime)
    return latest


def hash_all_files(storage: Storage, root: str) -> str:
    """SHA-1 over every file's relative path and contents."""
    digest = hashlib.sha1()
    prefix = root.rstrip("/") + "/"
    for _, _, files in storage.walk(root):
        for entry in files:
            digest.update(entry.path[len(prefix) :].encode("utf-8"))
            digest.update(b"\0")
            digest.update(storage.read_bytes(entry.path))
    return digest.hexdigest()


def storage_signal(storage: Storage, root: str, method: str = DEFAULT_CHECK_METHOD) -> str:
    """Compute the change signal for a content root.

    Args:
        storage: Storage holding the tree.
        root: Root folder of the content tree.
        method: "none"/"off" (constant), "folder", "hash" or "file".
            Unknown methods behave like "file".

    Returns:
        The signal as a string.
    """
    method = (method or DEFAULT_CHECK_METHOD).lower()
    if method in ("none", "off"):
        return "0"
    if method == "folder":
        return str(last_modified_folder(storage, root))
    if method == "hash":
        return hash_all_files(storage, root)
    if method != "file":
        logger.warning(f"Unknown cache check method {method!r}, using file")
    return str(last_modified_file(storage, root))
