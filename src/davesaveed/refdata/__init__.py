"""Reference item data consulted by the bulk mutators.

The game's item tables are shipped as a SQL dump; they are loaded into an
in-memory SQLite database once and queried read-only afterwards.
"""

from .gateway import (
    ITEM_DATA_ID,
    TID,
    IngredientRow,
    InMemoryReferenceData,
    ReferenceData,
)
from .sqlite_store import (
    MaxCountLookup,
    SqliteReferenceData,
    create_reference_store,
    open_reference_store,
)

__all__ = [
    "ITEM_DATA_ID",
    "TID",
    "IngredientRow",
    "InMemoryReferenceData",
    "ReferenceData",
    "MaxCountLookup",
    "SqliteReferenceData",
    "create_reference_store",
    "open_reference_store",
]
