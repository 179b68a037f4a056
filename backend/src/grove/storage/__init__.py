"""Storage access for page discovery."""

from grove.storage.base import Entry, Storage
from grove.storage.local import LocalStorage
from grove.storage.locator import ResourceLocator

__all__ = [
    "Entry",
    "Storage",
    "LocalStorage",
    "ResourceLocator",
]
