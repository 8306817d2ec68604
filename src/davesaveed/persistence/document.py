from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# Highest value the game accepts for any currency field
MAX_CURRENCY = 999_999_999

PLAYER_INFO = "PlayerInfo"
SNS_INFO = "SNSInfo"
INGREDIENTS = "Ingredients"
INVENTORY_ITEM_SLOT = "InventoryItemSlot"
STAFF = "Staff"

GOLD_FIELD = "m_Gold"
BEI_FIELD = "m_Bei"
ARTISANS_FLAME_FIELD = "m_ChefFlame"
FOLLOWER_COUNT_FIELD = "m_Follow_Count"

Collection = Union[Dict[str, Any], List[Any]]


def as_int(value: Any) -> Optional[int]:
    """Return ``value`` as an int if it is a JSON integer, else None.

    JSON booleans decode to ``bool`` which is an ``int`` subclass; they are not
    treated as integers here.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


class SaveDocument:
    """In-memory save document with guarded, path-based accessors.

    The decoded JSON tree is kept as plain dicts and lists so that unknown
    fields survive a load/write cycle untouched. Accessors never assume a
    section exists or has the expected shape: getters fall back to 0 and
    setters refuse to write into a missing or non-object section.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None, log: Optional[logging.Logger] = None) -> None:
        self.data: Dict[str, Any] = data if data is not None else {}
        self.log = log or logger

    # Section access

    def section(self, name: str) -> Optional[Dict[str, Any]]:
        """Return the named top-level section if it is an object, else None."""
        value = self.data.get(name)
        return value if isinstance(value, dict) else None

    def collection(self, name: str) -> Optional[Collection]:
        """Return a top-level object or array section, else None."""
        value = self.data.get(name)
        return value if isinstance(value, (dict, list)) else None

    def ensure_section(self, name: str) -> Dict[str, Any]:
        """Return the named object section, replacing a missing or malformed one with ``{}``."""
        value = self.data.get(name)
        if not isinstance(value, dict):
            self.log.info("Creating empty '%s' section in save data.", name)
            value = {}
            self.data[name] = value
        return value

    @staticmethod
    def entries(collection: Collection) -> Iterator[Tuple[str, Any]]:
        """Iterate ``(key, entry)`` pairs of an object or array collection."""
        if isinstance(collection, dict):
            yield from collection.items()
        else:
            for index, entry in enumerate(collection):
                yield str(index), entry

    # Scalar fields

    def get_int(self, section_name: str, field: str) -> int:
        section = self.section(section_name)
        if section is None or field not in section:
            return 0
        value = section[field]
        if isinstance(value, float) and value.is_integer():
            return int(value)
        number = as_int(value)
        if number is None:
            self.log.warning("%s.%s holds a non-integer value %r; treating as 0.", section_name, field, value)
            return 0
        return number

    def set_int(self, section_name: str, field: str, value: int, maximum: Optional[int] = None) -> Optional[int]:
        """Write ``value`` (clamped to ``maximum`` when given) into an existing section.

        Returns the stored value, or None when the section is missing.
        """
        section = self.section(section_name)
        if section is None:
            self.log.warning(
                "Attempted to set %s, but %s section not found or invalid.", field, section_name
            )
            return None
        stored = int(value)
        if maximum is not None:
            stored = min(stored, maximum)
        section[field] = stored
        return stored

    # Typed accessors

    def get_gold(self) -> int:
        return self.get_int(PLAYER_INFO, GOLD_FIELD)

    def get_bei(self) -> int:
        return self.get_int(PLAYER_INFO, BEI_FIELD)

    def get_artisans_flame(self) -> int:
        return self.get_int(PLAYER_INFO, ARTISANS_FLAME_FIELD)

    def get_follower_count(self) -> int:
        return self.get_int(SNS_INFO, FOLLOWER_COUNT_FIELD)

    def set_gold(self, value: int) -> Optional[int]:
        stored = self.set_int(PLAYER_INFO, GOLD_FIELD, value, MAX_CURRENCY)
        if stored is not None:
            self.log.info("Gold set to: %s", stored)
        return stored

    def set_bei(self, value: int) -> Optional[int]:
        stored = self.set_int(PLAYER_INFO, BEI_FIELD, value, MAX_CURRENCY)
        if stored is not None:
            self.log.info("Bei set to: %s", stored)
        return stored

    def set_artisans_flame(self, value: int) -> Optional[int]:
        stored = self.set_int(PLAYER_INFO, ARTISANS_FLAME_FIELD, value, MAX_CURRENCY)
        if stored is not None:
            self.log.info("Artisan's Flame set to: %s", stored)
        return stored

    def set_follower_count(self, value: int) -> Optional[int]:
        # No upper clamp for followers.
        stored = self.set_int(SNS_INFO, FOLLOWER_COUNT_FIELD, value)
        if stored is not None:
            self.log.info("Follower count set to: %s", stored)
        return stored
