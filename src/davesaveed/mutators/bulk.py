from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..errors import PreconditionError, ReferenceLookupMiss, UnrecognizedTier
from ..persistence.document import (
    INGREDIENTS,
    INVENTORY_ITEM_SLOT,
    STAFF,
    SaveDocument,
    as_int,
)
from ..refdata.gateway import ITEM_DATA_ID, TID, ReferenceData
from .tiers import SKIP, target_for_capacity

# Staff entry for the player character; never levelled by the editor
PROTAGONIST_STAFF_NAME = "Staff_Dave"
STAFF_MAX_LEVEL = 20

DEFAULT_LAST_GAIN_TIME = "04/01/2025 12:34:56"
DEFAULT_LAST_GAIN_GAME_TIME = "10/03/2022 08:30:52"

# Identifiers are stored as signed 64-bit integers by the game and SQLite
MIN_ITEM_ID = -(2**63)
MAX_ITEM_ID = 2**63 - 1


@dataclass
class MutationReport:
    """Outcome of one bulk operation.

    ``skipped`` is the total of every entry left unchanged; ``missing``,
    ``unrecognized`` and ``malformed`` break down the abnormal cases.
    """

    operation: str
    performed: bool = True
    updated: int = 0
    added: int = 0
    skipped: int = 0
    missing: int = 0
    unrecognized: int = 0
    malformed: int = 0
    reason: str = ""

    @classmethod
    def aborted(cls, operation: str, reason: str) -> "MutationReport":
        return cls(operation=operation, performed=False, reason=reason)

    def summary(self) -> str:
        if not self.performed:
            return f"{self.operation}: not performed ({self.reason})"
        text = f"{self.operation}: updated {self.updated}"
        if self.added:
            text += f", added {self.added}"
        text += f", skipped {self.skipped}"
        details = [
            f"{label} {count}"
            for label, count in (
                ("missing from reference data", self.missing),
                ("unrecognized tier", self.unrecognized),
                ("malformed", self.malformed),
            )
            if count
        ]
        if details:
            text += f" ({', '.join(details)})"
        return text


def _require_reference(ref: Optional[ReferenceData], operation: str) -> ReferenceData:
    if ref is None:
        raise PreconditionError(f"Reference data handle is missing for {operation}.")
    return ref


def _require_object_section(doc: SaveDocument, name: str, operation: str) -> Dict[str, Any]:
    section = doc.section(name)
    if section is None:
        raise PreconditionError(f"'{name}' section not found/invalid for {operation}.")
    return section


def _resolve_target(log: logging.Logger, report: MutationReport, lookup, key: int, label: str) -> int:
    """Look up and classify one key, recording why it is skipped if it is."""
    try:
        capacity = lookup(key)
    except ReferenceLookupMiss as miss:
        log.warning("MaxCount not found for %s %s in Items table. Skipping update.", label, miss.key)
        report.missing += 1
        report.skipped += 1
        return SKIP
    try:
        target = target_for_capacity(capacity)
    except UnrecognizedTier as e:
        log.warning("Unhandled MaxCount tier encountered: %s. Skipping %s %s.", e.capacity, label, key)
        report.unrecognized += 1
        report.skipped += 1
        return SKIP
    if target == SKIP:
        log.info("Skipping %s %s with MaxCount %s as per tier rules.", label, key, capacity)
        report.skipped += 1
    return target


def _max_owned(
    doc: SaveDocument,
    ref: Optional[ReferenceData],
    *,
    operation: str,
    section_name: str,
    id_field: str,
    key_column: str,
    count_field: str,
) -> MutationReport:
    ref = _require_reference(ref, operation)
    section = _require_object_section(doc, section_name, operation)
    report = MutationReport(operation=operation)

    # Collect every change first so a failing query leaves the document untouched.
    planned: List[Tuple[Dict[str, Any], int]] = []
    with ref.max_count_lookup(key_column) as lookup:
        for key, entry in section.items():
            item_id = as_int(entry.get(id_field)) if isinstance(entry, dict) else None
            if item_id is None or not MIN_ITEM_ID <= item_id <= MAX_ITEM_ID:
                doc.log.warning("Skipping %s entry without valid '%s': %s. Malformed entry.", section_name, id_field, key)
                report.malformed += 1
                report.skipped += 1
                continue
            target = _resolve_target(doc.log, report, lookup, item_id, id_field)
            if target != SKIP:
                planned.append((entry, target))

    for entry, target in planned:
        entry[count_field] = target
    report.updated = len(planned)
    doc.log.info("%s", report.summary())
    return report


def max_own_ingredients(doc: SaveDocument, ref: Optional[ReferenceData]) -> MutationReport:
    """Raise the count of every owned ingredient to its tier target."""
    return _max_owned(
        doc,
        ref,
        operation="MaxOwnIngredients",
        section_name=INGREDIENTS,
        id_field="ingredientsID",
        key_column=ITEM_DATA_ID,
        count_field="count",
    )


def max_own_materials(doc: SaveDocument, ref: Optional[ReferenceData]) -> MutationReport:
    """Raise the total count of every owned inventory slot to its tier target."""
    return _max_owned(
        doc,
        ref,
        operation="MaxOwnMaterials",
        section_name=INVENTORY_ITEM_SLOT,
        id_field="itemID",
        key_column=TID,
        count_field="totalCount",
    )


def _template_timestamps(ingredients: Dict[str, Any]) -> Tuple[str, str]:
    """Gain timestamps for synthesized entries, taken from the first existing entry if possible."""
    last_gain_time = DEFAULT_LAST_GAIN_TIME
    last_gain_game_time = DEFAULT_LAST_GAIN_GAME_TIME
    first = next(iter(ingredients.values()), None)
    if isinstance(first, dict):
        if isinstance(first.get("lastGainTime"), str):
            last_gain_time = first["lastGainTime"]
        if isinstance(first.get("lastGainGameTime"), str):
            last_gain_game_time = first["lastGainGameTime"]
    return last_gain_time, last_gain_game_time


def new_ingredient_entry(
    ingredient_id: int, parent_id: int, count: int, last_gain_time: str, last_gain_game_time: str
) -> Dict[str, Any]:
    """Build an ingredient record with the same field set the game writes."""
    return {
        "ingredientsID": ingredient_id,
        "level": 1,
        "parentID": parent_id,
        "count": count,
        "branchCount": 0,
        "lastGainTime": last_gain_time,
        "lastGainGameTime": last_gain_game_time,
        "isNew": True,
        "placeTagMask": 1,
    }


def max_all_ingredients(doc: SaveDocument, ref: Optional[ReferenceData]) -> MutationReport:
    """Set every ingredient known to the reference data to its tier target, adding missing ones."""
    operation = "MaxAllIngredients"
    ref = _require_reference(ref, operation)
    existing = doc.data.get(INGREDIENTS)
    if existing is not None and not isinstance(existing, dict):
        raise PreconditionError(f"'{INGREDIENTS}' section is not an object; refusing to replace it.")

    rows = ref.eligible_ingredients()
    ingredients = doc.ensure_section(INGREDIENTS)
    last_gain_time, last_gain_game_time = _template_timestamps(ingredients)
    doc.log.info("Using timestamps '%s' / '%s' for new ingredients.", last_gain_time, last_gain_game_time)

    report = MutationReport(operation=operation)
    for row in rows:
        if not row.complete:
            doc.log.warning("Skipping database ingredient entry due to missing required fields: %s", row)
            report.malformed += 1
            report.skipped += 1
            continue
        try:
            target = target_for_capacity(row.max_count)
        except UnrecognizedTier as e:
            doc.log.warning(
                "Unhandled MaxCount tier encountered: %s. Skipping ingredient ID %s.", e.capacity, row.ingredient_id
            )
            report.unrecognized += 1
            report.skipped += 1
            continue
        if target == SKIP:
            doc.log.info(
                "Skipping ingredient ID %s with MaxCount %s from database as per tier rules.",
                row.ingredient_id,
                row.max_count,
            )
            report.skipped += 1
            continue

        key = str(row.ingredient_id)
        entry = ingredients.get(key)
        if entry is None:
            ingredients[key] = new_ingredient_entry(
                row.ingredient_id, row.parent_id, target, last_gain_time, last_gain_game_time
            )
            report.added += 1
        elif isinstance(entry, dict):
            entry["count"] = target
            report.updated += 1
        else:
            doc.log.warning("Skipping ingredient %s: existing entry is not an object.", key)
            report.malformed += 1
            report.skipped += 1

    doc.log.info("%s", report.summary())
    return report


def max_own_staff_level(doc: SaveDocument) -> MutationReport:
    """Raise every hired staff member except the protagonist to the maximum level."""
    operation = "MaxOwnStaffLevel"
    staff = doc.collection(STAFF)
    if staff is None:
        raise PreconditionError(f"'{STAFF}' section not found/invalid for {operation}.")

    report = MutationReport(operation=operation)
    for key, member in SaveDocument.entries(staff):
        name = member.get("name") if isinstance(member, dict) else None
        if not isinstance(name, str):
            doc.log.warning("Skipping staff entry %s without a valid 'name'.", key)
            report.malformed += 1
            report.skipped += 1
            continue
        if name == PROTAGONIST_STAFF_NAME:
            report.skipped += 1
            continue
        member["level"] = STAFF_MAX_LEVEL
        report.updated += 1

    doc.log.info("%s", report.summary())
    return report
