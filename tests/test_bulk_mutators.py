import copy
import logging
from contextlib import contextmanager

import pytest

from davesaveed.errors import PreconditionError, ReferenceDataError
from davesaveed.mutators import (
    DEFAULT_LAST_GAIN_GAME_TIME,
    DEFAULT_LAST_GAIN_TIME,
    MutationReport,
    max_all_ingredients,
    max_own_ingredients,
    max_own_materials,
    max_own_staff_level,
)
from davesaveed.persistence.document import SaveDocument
from davesaveed.refdata import ITEM_DATA_ID, InMemoryReferenceData, ReferenceData


class FlakyReference(ReferenceData):
    """Answers the first lookup, then fails as if the database went away."""

    def __init__(self, answer: int = 99) -> None:
        self.answer = answer
        self.calls = 0

    @contextmanager
    def max_count_lookup(self, column: str = ITEM_DATA_ID):
        def lookup(key: int) -> int:
            self.calls += 1
            if self.calls > 1:
                raise ReferenceDataError("database is locked")
            return self.answer

        yield lookup

    def eligible_ingredients(self):
        raise ReferenceDataError("database is locked")


def test_max_own_ingredients(sample_data, reference):
    report = max_own_ingredients(SaveDocument(sample_data), reference)

    ingredients = sample_data["Ingredients"]
    assert ingredients["101"]["count"] == 66
    assert ingredients["103"]["count"] == 1
    assert ingredients["999"]["count"] == 2
    assert (report.updated, report.skipped, report.missing, report.unrecognized) == (1, 2, 1, 0)
    assert report.performed


def test_max_own_ingredients_only_touches_count(sample_data, reference):
    before = copy.deepcopy(sample_data)
    max_own_ingredients(SaveDocument(sample_data), reference)
    before["Ingredients"]["101"]["count"] = 66
    assert sample_data == before


def test_max_own_ingredients_logs_missing_items(sample_data, reference, caplog):
    caplog.set_level(logging.WARNING)
    max_own_ingredients(SaveDocument(sample_data), reference)
    assert any("MaxCount not found" in r.getMessage() and "999" in r.getMessage() for r in caplog.records)


def test_max_own_ingredients_skips_malformed_entries(reference):
    data = {"Ingredients": {"a": "oops", "b": {"count": 1}, "c": {"ingredientsID": "101", "count": 1}}}
    report = max_own_ingredients(SaveDocument(data), reference)
    assert report.malformed == 3
    assert report.updated == 0
    assert data["Ingredients"]["b"] == {"count": 1}


def test_max_own_materials_keys_on_tid(sample_data, reference):
    report = max_own_materials(SaveDocument(sample_data), reference)

    slots = sample_data["InventoryItemSlot"]
    assert slots["9001"]["totalCount"] == 66
    assert slots["9002"]["totalCount"] == 666
    assert slots["7777"]["totalCount"] == 1
    assert (report.updated, report.skipped, report.missing) == (2, 1, 1)


def test_unrecognized_tier_is_skipped():
    ref = InMemoryReferenceData(items=[{"ItemDataID": 1, "TID": 1, "MaxCount": 50}])
    data = {"Ingredients": {"1": {"ingredientsID": 1, "count": 7}}}
    report = max_own_ingredients(SaveDocument(data), ref)
    assert data["Ingredients"]["1"]["count"] == 7
    assert report.unrecognized == 1


@pytest.mark.parametrize("operation", [max_own_ingredients, max_own_materials, max_all_ingredients])
def test_missing_reference_is_a_precondition_error(sample_data, operation):
    before = copy.deepcopy(sample_data)
    with pytest.raises(PreconditionError):
        operation(SaveDocument(sample_data), None)
    assert sample_data == before


@pytest.mark.parametrize("operation", [max_own_ingredients, max_own_materials])
def test_missing_section_is_a_precondition_error(reference, operation):
    data = {"PlayerInfo": {}}
    with pytest.raises(PreconditionError):
        operation(SaveDocument(data), reference)
    assert data == {"PlayerInfo": {}}


def test_failing_lookup_leaves_document_untouched(sample_data):
    before = copy.deepcopy(sample_data)
    with pytest.raises(ReferenceDataError):
        max_own_ingredients(SaveDocument(sample_data), FlakyReference())
    assert sample_data == before


def test_max_all_ingredients(sample_data, reference):
    report = max_all_ingredients(SaveDocument(sample_data), reference)

    ingredients = sample_data["Ingredients"]
    assert ingredients["101"]["count"] == 66
    assert ingredients["103"]["count"] == 1
    assert "104" not in ingredients
    assert ingredients["105"]["count"] == 6666
    assert ingredients["999"]["count"] == 2
    assert ingredients["102"] == {
        "ingredientsID": 102,
        "level": 1,
        "parentID": 9002,
        "count": 666,
        "branchCount": 0,
        "lastGainTime": "05/06/2025 10:00:00",
        "lastGainGameTime": "11/03/2022 09:00:00",
        "isNew": True,
        "placeTagMask": 1,
    }
    assert list(ingredients["102"]) == [
        "ingredientsID",
        "level",
        "parentID",
        "count",
        "branchCount",
        "lastGainTime",
        "lastGainGameTime",
        "isNew",
        "placeTagMask",
    ]
    assert (report.updated, report.added, report.skipped, report.unrecognized) == (1, 2, 2, 1)


def test_max_all_ingredients_is_idempotent(sample_data, reference):
    doc = SaveDocument(sample_data)
    max_all_ingredients(doc, reference)
    once = copy.deepcopy(sample_data)
    report = max_all_ingredients(doc, reference)
    assert sample_data == once
    assert report.added == 0
    assert report.updated == 3


def test_max_all_ingredients_creates_section_with_default_timestamps():
    ref = InMemoryReferenceData(
        items=[{"ItemDataID": 5, "TID": 50, "MaxCount": 99}],
        ingredient_ids=[5],
    )
    data = {"PlayerInfo": {"m_Gold": 1}}
    report = max_all_ingredients(SaveDocument(data), ref)

    entry = data["Ingredients"]["5"]
    assert entry["ingredientsID"] == 5
    assert entry["parentID"] == 50
    assert entry["count"] == 66
    assert entry["lastGainTime"] == DEFAULT_LAST_GAIN_TIME == "04/01/2025 12:34:56"
    assert entry["lastGainGameTime"] == DEFAULT_LAST_GAIN_GAME_TIME == "10/03/2022 08:30:52"
    assert report.added == 1


def test_max_all_ingredients_refuses_non_object_section(reference):
    data = {"Ingredients": [1, 2, 3]}
    with pytest.raises(PreconditionError):
        max_all_ingredients(SaveDocument(data), reference)
    assert data == {"Ingredients": [1, 2, 3]}


def test_max_all_ingredients_query_failure_adds_nothing():
    data = {"PlayerInfo": {}}
    with pytest.raises(ReferenceDataError):
        max_all_ingredients(SaveDocument(data), FlakyReference())
    assert data == {"PlayerInfo": {}}


def test_max_all_ingredients_skips_incomplete_rows():
    ref = InMemoryReferenceData(
        items=[{"ItemDataID": 5, "MaxCount": 99}, {"ItemDataID": 6, "TID": 60, "MaxCount": 999}],
        ingredient_ids=[5, 6],
    )
    data = {"Ingredients": {}}
    report = max_all_ingredients(SaveDocument(data), ref)
    assert list(data["Ingredients"]) == ["6"]
    assert report.malformed == 1


def test_max_all_ingredients_keeps_non_object_entries():
    ref = InMemoryReferenceData(items=[{"ItemDataID": 5, "TID": 50, "MaxCount": 99}], ingredient_ids=[5])
    data = {"Ingredients": {"5": "corrupt"}}
    report = max_all_ingredients(SaveDocument(data), ref)
    assert data["Ingredients"]["5"] == "corrupt"
    assert report.malformed == 1


def test_max_own_staff_level(sample_data):
    report = max_own_staff_level(SaveDocument(sample_data))
    assert sample_data["Staff"] == [
        {"name": "Staff_Dave", "level": 1},
        {"name": "Staff_Bob", "level": 20},
    ]
    assert (report.updated, report.skipped) == (1, 1)


def test_max_own_staff_level_accepts_object_collection():
    data = {"Staff": {"a": {"name": "Staff_Ann", "level": 3}, "b": {"level": 2}, "c": 5}}
    report = max_own_staff_level(SaveDocument(data))
    assert data["Staff"]["a"]["level"] == 20
    assert data["Staff"]["b"] == {"level": 2}
    assert report.malformed == 2


def test_max_own_staff_level_without_staff():
    with pytest.raises(PreconditionError):
        max_own_staff_level(SaveDocument({"Staff": "none"}))


def test_report_summary():
    report = MutationReport("MaxOwnIngredients", updated=1, skipped=2, missing=1)
    assert report.summary() == "MaxOwnIngredients: updated 1, skipped 2 (missing from reference data 1)"
    report = MutationReport("MaxAllIngredients", updated=1, added=2, skipped=2, unrecognized=1)
    assert report.summary() == "MaxAllIngredients: updated 1, added 2, skipped 2 (unrecognized tier 1)"
    assert MutationReport.aborted("X", "no save file loaded").summary() == "X: not performed (no save file loaded)"


def test_out_of_range_identifier_is_skipped_as_malformed(reference):
    data = {
        "Ingredients": {
            "1": {"ingredientsID": 2**70, "count": 1},
            "101": {"ingredientsID": 101, "count": 3},
        }
    }
    report = max_own_ingredients(SaveDocument(data), reference)
    assert report.performed
    assert data["Ingredients"]["1"]["count"] == 1
    assert data["Ingredients"]["101"]["count"] == 66
    assert (report.updated, report.malformed, report.skipped) == (1, 1, 1)


def test_out_of_range_identifier_through_editor(tmp_path, reference):
    from davesaveed.editor import SaveGameManager
    from davesaveed.persistence.codec import encode_save

    save = tmp_path / "GameSave_09_GD.sav"
    save.write_bytes(encode_save({"InventoryItemSlot": {"x": {"itemID": -(2**64), "totalCount": 1}}}))
    manager = SaveGameManager(backup_dir=tmp_path / "backups")
    assert manager.load(save)
    report = manager.max_own_materials(reference)
    assert report.performed
    assert report.malformed == 1


def test_max_all_ingredients_into_empty_section_builds_full_record():
    ref = InMemoryReferenceData(items=[{"ItemDataID": 5, "TID": 50, "MaxCount": 99}], ingredient_ids=[5])
    data = {"Ingredients": {}}
    report = max_all_ingredients(SaveDocument(data), ref)

    assert data["Ingredients"] == {
        "5": {
            "ingredientsID": 5,
            "level": 1,
            "parentID": 50,
            "count": 66,
            "branchCount": 0,
            "lastGainTime": "04/01/2025 12:34:56",
            "lastGainGameTime": "10/03/2022 08:30:52",
            "isNew": True,
            "placeTagMask": 1,
        }
    }
    assert (report.added, report.updated, report.skipped) == (1, 0, 0)
