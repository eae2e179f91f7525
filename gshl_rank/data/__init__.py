"""Row-store persistence for aggregate and raw stat records.

Submodules:
    models: Declarative base and the stat record table.
    db: Engine and session management.
    store: Row-store implementations and natural key building.
"""

from gshl_rank.data.store import (
    NATURAL_KEY_FIELDS,
    InMemoryRowStore,
    SqlRowStore,
    build_natural_key,
)

__all__ = [
    "NATURAL_KEY_FIELDS",
    "InMemoryRowStore",
    "SqlRowStore",
    "build_natural_key",
]
