"""Page index cache constants."""

# =============================================================================
# Snapshot Format
# =============================================================================
# The snapshot tag distinguishes the backing store the index was built from.
# A snapshot whose tag differs from the running mode is discarded even when
# its digest matches.

FORMAT_VERSION_PAGE = "page"
FORMAT_VERSION_DELEGATED = "flex"

# =============================================================================
# Storage Change Signal
# =============================================================================

CHECK_METHODS = ("none", "off", "folder", "hash", "file")
DEFAULT_CHECK_METHOD = "file"

# Prefix for cache keys of indexes built from a delegated store.

DELEGATED_CACHE_PREFIX = "pages-"

# File suffix used by the file cache backend.

CACHE_FILE_SUFFIX = ".json"
