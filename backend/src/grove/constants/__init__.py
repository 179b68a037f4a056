"""Index constants.

Re-exports all constants for convenient importing:
    from grove.constants import MAX_REWRITE_HOPS, FORMAT_VERSION_PAGE
"""

from grove.constants.pages import *  # noqa: F403
from grove.constants.cache import *  # noqa: F403
