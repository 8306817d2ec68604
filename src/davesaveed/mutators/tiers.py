from __future__ import annotations

import logging

from ..errors import UnrecognizedTier

logger = logging.getLogger(__name__)

# Target stack size for each known MaxCount tier. Anything at or above the
# highest tier maps to its target.
TIER_TARGETS = {
    99: 66,
    999: 666,
}
TOP_TIER = 9999
TOP_TIER_TARGET = 6666

SKIP = 0


def target_for_capacity(capacity: int) -> int:
    """Map an item's MaxCount to the quantity it should be set to.

    Returns 0 for single-stack items (quest and tracking items must stay
    untouched). Raises :class:`UnrecognizedTier` for capacities outside the
    known tiers.
    """
    if capacity == 1:
        return SKIP
    if capacity >= TOP_TIER:
        return TOP_TIER_TARGET
    try:
        return TIER_TARGETS[capacity]
    except KeyError:
        raise UnrecognizedTier(capacity) from None


def classify(capacity: int) -> int:
    """Total variant of :func:`target_for_capacity`: unknown tiers become 0 with a warning."""
    try:
        return target_for_capacity(capacity)
    except UnrecognizedTier:
        logger.warning("Unhandled MaxCount tier encountered: %s. Skipping item.", capacity)
        return SKIP
