from __future__ import annotations

import logging
import sqlite3
import zlib
from pathlib import Path
from typing import List, Optional, Union

from ..errors import ReferenceDataError, ReferenceLookupMiss
from .gateway import ITEM_DATA_ID, KEY_COLUMNS, IngredientRow, ReferenceData

logger = logging.getLogger(__name__)

SQLITE_MAGIC = b"SQLite format 3\x00"

ELIGIBLE_INGREDIENTS_SQL = """
    SELECT
        I.TID AS ingredientsID,
        T.TID AS parentID,
        T.MaxCount AS MaxCount
    FROM
        Ingredients AS I
    JOIN
        Items AS T
    ON
        I.TID = T.ItemDataID
"""


def _optional_int(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class MaxCountLookup:
    """Parameterized ``SELECT MaxCount FROM Items`` reused across a loop.

    One cursor is held for the lifetime of the lookup and re-executed for each
    key; sqlite3 keeps the compiled statement in the connection's cache.
    """

    def __init__(self, conn: sqlite3.Connection, column: str = ITEM_DATA_ID) -> None:
        if column not in KEY_COLUMNS:
            raise ValueError(f"Unsupported Items key column: {column}")
        self.column = column
        self._sql = f"SELECT MaxCount FROM Items WHERE {column} = ?"
        try:
            self._cursor: Optional[sqlite3.Cursor] = conn.cursor()
        except sqlite3.Error as e:
            raise ReferenceDataError(f"Cannot prepare MaxCount query: {e}") from e

    def __call__(self, key: int) -> int:
        if self._cursor is None:
            raise ReferenceDataError("MaxCount lookup used after close")
        try:
            row = self._cursor.execute(self._sql, (key,)).fetchone()
        except OverflowError:
            # Outside SQLite's 64-bit INTEGER range, so no row can match.
            raise ReferenceLookupMiss(key, self.column) from None
        except sqlite3.Error as e:
            raise ReferenceDataError(f"MaxCount query failed for {self.column} {key}: {e}") from e
        max_count = _optional_int(row[0]) if row is not None else None
        if max_count is None:
            raise ReferenceLookupMiss(key, self.column)
        return max_count

    def close(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None

    def __enter__(self) -> "MaxCountLookup":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class SqliteReferenceData(ReferenceData):
    """Reference data held in a SQLite connection (normally in-memory)."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def max_count_lookup(self, column: str = ITEM_DATA_ID) -> MaxCountLookup:
        return MaxCountLookup(self.conn, column)

    def eligible_ingredients(self) -> List[IngredientRow]:
        try:
            rows = self.conn.execute(ELIGIBLE_INGREDIENTS_SQL).fetchall()
        except sqlite3.Error as e:
            raise ReferenceDataError(f"SQL error getting all ingredients: {e}") from e
        result = [IngredientRow(*(_optional_int(v) for v in row)) for row in rows]
        logger.info("Retrieved %d potential ingredients from database.", len(result))
        return result

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "SqliteReferenceData":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def create_reference_store(sql_text: str) -> SqliteReferenceData:
    """Build an in-memory reference store from a SQL dump."""
    conn = sqlite3.connect(":memory:")
    try:
        conn.executescript(sql_text)
    except sqlite3.Error as e:
        conn.close()
        raise ReferenceDataError(f"Failed to execute reference SQL dump: {e}") from e
    return SqliteReferenceData(conn)


def open_reference_store(path: Union[str, Path]) -> SqliteReferenceData:
    """Open reference data from a SQLite file, a SQL dump, or a zlib-compressed SQL dump.

    The data is always copied into an in-memory database so the source file is
    never modified.
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ReferenceDataError(f"Cannot read reference data {path}: {e}") from e

    if raw.startswith(SQLITE_MAGIC):
        conn = sqlite3.connect(":memory:")
        try:
            source = sqlite3.connect(str(path))
            try:
                source.backup(conn)
            finally:
                source.close()
        except sqlite3.Error as e:
            conn.close()
            raise ReferenceDataError(f"Cannot copy reference database {path}: {e}") from e
        logger.info("Reference database loaded from %s", path)
        return SqliteReferenceData(conn)

    try:
        raw = zlib.decompress(raw)
        logger.info("SQL data decompressed successfully. Original size: %d bytes.", len(raw))
    except zlib.error:
        logger.debug("%s is not zlib-compressed; reading as plain SQL", path)
    try:
        sql_text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ReferenceDataError(f"Reference dump {path} is not UTF-8 SQL: {e}") from e
    store = create_reference_store(sql_text)
    logger.info("Reference database populated from %s", path)
    return store
