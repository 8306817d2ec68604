from .bulk import (
    DEFAULT_LAST_GAIN_GAME_TIME,
    DEFAULT_LAST_GAIN_TIME,
    PROTAGONIST_STAFF_NAME,
    STAFF_MAX_LEVEL,
    MutationReport,
    max_all_ingredients,
    max_own_ingredients,
    max_own_materials,
    max_own_staff_level,
    new_ingredient_entry,
)
from .tiers import classify, target_for_capacity

__all__ = [
    "DEFAULT_LAST_GAIN_GAME_TIME",
    "DEFAULT_LAST_GAIN_TIME",
    "PROTAGONIST_STAFF_NAME",
    "STAFF_MAX_LEVEL",
    "MutationReport",
    "max_all_ingredients",
    "max_own_ingredients",
    "max_own_materials",
    "max_own_staff_level",
    "new_ingredient_entry",
    "classify",
    "target_for_capacity",
]
