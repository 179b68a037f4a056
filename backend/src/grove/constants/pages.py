"""Page discovery, routing and ordering constants.

These values are structural rather than user tunable; anything a site
owner is expected to change lives in config.ini (see grove.config).
"""

import re

# =============================================================================
# Folder Naming
# =============================================================================
# Folders may carry a numeric order prefix ("01.blog"). The prefix makes the
# page visible by default and is stripped when deriving the slug.

ORDER_PREFIX_RE = re.compile(r"^(\d+)\.(.*)$")

# Folders starting with this marker hold modular (aggregate) pages and are
# never routable on their own.

MODULAR_PREFIX = "_"

# Template name that folds children's modification times into the parent.

MODULAR_TEMPLATE = "modular"

# Template used when a folder has no content file.

DEFAULT_TEMPLATE = "default"

# =============================================================================
# Routing
# =============================================================================
# Site rewrite rules re-dispatch the rewritten route. A chain longer than
# this is treated as a cycle.

MAX_REWRITE_HOPS = 10

# =============================================================================
# Sorting
# =============================================================================
# Numeric runs are zero padded to this width before locale collation so
# "item9" sorts before "item10".

NATURAL_PAD_WIDTH = 32

# Order fields that compare as raw timestamps.

DATE_ORDER_FIELDS = frozenset({"date", "modified", "publish_date", "unpublish_date"})
