from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, ContextManager, Iterator, List, Optional

from ..errors import ReferenceLookupMiss

# Items columns a save collection can be keyed against
ITEM_DATA_ID = "ItemDataID"
TID = "TID"
KEY_COLUMNS = (ITEM_DATA_ID, TID)

MaxCountLookupFn = Callable[[int], int]


@dataclass(frozen=True)
class IngredientRow:
    """One ``Ingredients JOIN Items`` row. Columns may be NULL in a damaged store."""

    ingredient_id: Optional[int]
    parent_id: Optional[int]
    max_count: Optional[int]

    @property
    def complete(self) -> bool:
        return None not in (self.ingredient_id, self.parent_id, self.max_count)


class ReferenceData(ABC):
    """Read-only view of the game's item reference tables.

    Implementations must provide an ``Items`` table (``ItemDataID``, ``TID``,
    ``MaxCount``) and an ``Ingredients`` table joinable to it on
    ``Ingredients.TID = Items.ItemDataID``.
    """

    @abstractmethod
    def max_count_lookup(self, column: str = ITEM_DATA_ID) -> ContextManager[MaxCountLookupFn]:
        """Acquire a reusable MaxCount query keyed on ``column``.

        The yielded callable returns the MaxCount for a key or raises
        :class:`~davesaveed.errors.ReferenceLookupMiss`.
        """

    @abstractmethod
    def eligible_ingredients(self) -> List[IngredientRow]:
        """Every ingredient that has a matching Items row."""

    def lookup_max_count(self, key: int, column: str = ITEM_DATA_ID) -> int:
        with self.max_count_lookup(column) as lookup:
            return lookup(key)


class InMemoryReferenceData(ReferenceData):
    """Dictionary-backed reference data, handy for tests and scripted edits."""

    def __init__(self, items: Optional[List[dict]] = None, ingredient_ids: Optional[List[int]] = None) -> None:
        self.items = list(items or [])
        self.ingredient_ids = list(ingredient_ids or [])

    @contextmanager
    def max_count_lookup(self, column: str = ITEM_DATA_ID) -> Iterator[MaxCountLookupFn]:
        if column not in KEY_COLUMNS:
            raise ValueError(f"Unsupported Items key column: {column}")
        index = {row[column]: row.get("MaxCount") for row in self.items if column in row}

        def lookup(key: int) -> int:
            value = index.get(key)
            if value is None:
                raise ReferenceLookupMiss(key, column)
            return int(value)

        yield lookup

    def eligible_ingredients(self) -> List[IngredientRow]:
        by_item_data_id = {row.get(ITEM_DATA_ID): row for row in self.items}
        rows = []
        for ingredient_id in self.ingredient_ids:
            item = by_item_data_id.get(ingredient_id)
            if item is not None:
                rows.append(IngredientRow(ingredient_id, item.get(TID), item.get("MaxCount")))
        return rows
