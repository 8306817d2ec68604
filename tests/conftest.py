import copy
import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from davesaveed.persistence.codec import encode_save  # noqa: E402
from davesaveed.refdata import create_reference_store  # noqa: E402

# Items: (ItemDataID, TID, MaxCount). Ingredient 106 has no Items row.
REFERENCE_SQL = """
CREATE TABLE Items (ItemDataID INTEGER, TID INTEGER, MaxCount INTEGER, Name TEXT);
CREATE TABLE Ingredients (TID INTEGER, Name TEXT);
INSERT INTO Items VALUES (101, 9001, 99, 'Bluefin Tuna');
INSERT INTO Items VALUES (102, 9002, 999, 'Sea Salt');
INSERT INTO Items VALUES (103, 9003, 1, 'Quest Pearl');
INSERT INTO Items VALUES (104, 9004, 50, 'Odd Stack');
INSERT INTO Items VALUES (105, 9005, 20000, 'Rice');
INSERT INTO Ingredients VALUES (101, 'Bluefin Tuna');
INSERT INTO Ingredients VALUES (102, 'Sea Salt');
INSERT INTO Ingredients VALUES (103, 'Quest Pearl');
INSERT INTO Ingredients VALUES (104, 'Odd Stack');
INSERT INTO Ingredients VALUES (105, 'Rice');
INSERT INTO Ingredients VALUES (106, 'Unlisted');
"""

SAMPLE_SAVE = {
    "PlayerInfo": {"m_Gold": 100, "m_Bei": 5, "m_ChefFlame": 7, "m_Name": "Dave"},
    "SNSInfo": {"m_Follow_Count": 12},
    "Ingredients": {
        "101": {
            "ingredientsID": 101,
            "level": 2,
            "parentID": 9001,
            "count": 3,
            "branchCount": 0,
            "lastGainTime": "05/06/2025 10:00:00",
            "lastGainGameTime": "11/03/2022 09:00:00",
            "isNew": False,
            "placeTagMask": 1,
        },
        "103": {
            "ingredientsID": 103,
            "level": 1,
            "parentID": 9003,
            "count": 1,
            "branchCount": 0,
            "lastGainTime": "05/06/2025 10:05:00",
            "lastGainGameTime": "11/03/2022 09:30:00",
            "isNew": False,
            "placeTagMask": 1,
        },
        "999": {"ingredientsID": 999, "count": 2},
    },
    "InventoryItemSlot": {
        "9001": {"itemID": 9001, "totalCount": 4},
        "9002": {"itemID": 9002, "totalCount": 10},
        "7777": {"itemID": 7777, "totalCount": 1},
    },
    "Staff": [
        {"name": "Staff_Dave", "level": 1},
        {"name": "Staff_Bob", "level": 1},
    ],
}


@pytest.fixture()
def sample_data() -> dict:
    return copy.deepcopy(SAMPLE_SAVE)


@pytest.fixture()
def save_file(tmp_path: Path, sample_data: dict) -> Path:
    path = tmp_path / "GameSave_00_GD.sav"
    path.write_bytes(encode_save(sample_data))
    return path


@pytest.fixture()
def reference_sql() -> str:
    return REFERENCE_SQL


@pytest.fixture()
def reference():
    store = create_reference_store(REFERENCE_SQL)
    yield store
    store.close()
