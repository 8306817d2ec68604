from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union

from .errors import FormatError, PreconditionError, ReferenceDataError, SaveError, SaveIOError
from .mutators.bulk import (
    MutationReport,
    max_all_ingredients,
    max_own_ingredients,
    max_own_materials,
    max_own_staff_level,
)
from .persistence.codec import decode_save, dump_document, encode_text
from .persistence.document import SaveDocument
from .persistence.paths import BACKUP_FOLDER_NAME, atomic_write_bytes, create_backup, default_backup_dir
from .refdata.gateway import ReferenceData

logger = logging.getLogger(__name__)


class SaveGameManager:
    """Owns one loaded save file through its load, edit and write cycle.

    Failures never propagate to the caller: ``load`` reports a bool, ``write``
    the backup path or None, and bulk operations a :class:`MutationReport`.
    Details go to the injected logger.
    """

    def __init__(
        self,
        backup_dir: Optional[Path] = None,
        backup_folder_name: str = BACKUP_FOLDER_NAME,
        log: Optional[logging.Logger] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.log = log or logger
        self.backup_dir = Path(backup_dir) if backup_dir else None
        self.backup_folder_name = backup_folder_name
        self.clock = clock
        self.document = SaveDocument(log=self.log)
        self.save_path: Optional[Path] = None
        self.loaded = False

    def is_loaded(self) -> bool:
        return self.loaded

    def _reset(self) -> None:
        self.document = SaveDocument(log=self.log)
        self.save_path = None
        self.loaded = False

    # Lifecycle

    def load(self, path: Union[str, Path]) -> bool:
        """Read, decode and parse a save file, replacing any previously loaded one."""
        path = Path(path)
        self.log.info("Attempting to load save file: %s", path)
        self._reset()
        try:
            try:
                raw = path.read_bytes()
            except OSError as e:
                raise SaveIOError(f"Could not open save file for reading: {path}: {e}") from e
            self.log.info("Read %d bytes from file.", len(raw))
            data = decode_save(raw)
        except FormatError as e:
            self.log.error("JSON parse error during load: %s", e)
            return False
        except SaveError as e:
            self.log.error("Error during load: %s", e)
            return False

        self.document = SaveDocument(data, log=self.log)
        self.save_path = path
        self.loaded = True
        self.log.info("Save file JSON parsed successfully.")
        return True

    def resolve_backup_dir(self) -> Path:
        if self.backup_dir is not None:
            return self.backup_dir
        assert self.save_path is not None
        return default_backup_dir(self.save_path, self.backup_folder_name)

    def write(self) -> Optional[Path]:
        """Back up the on-disk save, then overwrite it with the edited document.

        Returns the backup path on success. Nothing is written to the save
        file unless the backup was made first.
        """
        if not self.loaded or self.save_path is None:
            self.log.warning("Attempted to write save file, but no file is loaded or path is empty.")
            return None

        self.log.info("Attempting to write save file: %s", self.save_path)
        try:
            backup_path = create_backup(self.save_path, self.resolve_backup_dir(), self.clock())
        except SaveIOError as e:
            self.log.error("Error writing save file: %s", e)
            return None

        try:
            try:
                payload = encode_text(dump_document(self.document.data))
            except RecursionError as e:
                raise FormatError("Document cannot be serialized: nesting too deep") from e
            except (TypeError, ValueError) as e:
                # UnicodeEncodeError is a ValueError.
                raise FormatError(f"Document cannot be serialized: {e}") from e
            try:
                atomic_write_bytes(self.save_path, payload)
            except OSError as e:
                raise SaveIOError(f"Could not write save file {self.save_path}: {e}") from e
        except SaveError as e:
            self.log.error("Error writing save file: %s (backup kept at %s)", e, backup_path)
            return None

        self.log.info("Modified save file written successfully to: %s", self.save_path)
        return backup_path

    # Scalar fields

    def get_gold(self) -> int:
        return self.document.get_gold() if self.loaded else 0

    def get_bei(self) -> int:
        return self.document.get_bei() if self.loaded else 0

    def get_artisans_flame(self) -> int:
        return self.document.get_artisans_flame() if self.loaded else 0

    def get_follower_count(self) -> int:
        return self.document.get_follower_count() if self.loaded else 0

    def _require_loaded(self, what: str) -> bool:
        if not self.loaded:
            self.log.warning("Attempted to %s without a loaded save file.", what)
        return self.loaded

    def set_gold(self, value: int) -> Optional[int]:
        return self.document.set_gold(value) if self._require_loaded("set gold") else None

    def set_bei(self, value: int) -> Optional[int]:
        return self.document.set_bei(value) if self._require_loaded("set bei") else None

    def set_artisans_flame(self, value: int) -> Optional[int]:
        return self.document.set_artisans_flame(value) if self._require_loaded("set artisan's flame") else None

    def set_follower_count(self, value: int) -> Optional[int]:
        return self.document.set_follower_count(value) if self._require_loaded("set follower count") else None

    # Bulk operations

    def _run_bulk(self, operation: str, mutate: Callable[..., MutationReport], *args) -> MutationReport:
        if not self.loaded:
            self.log.warning("No save file loaded for %s.", operation)
            return MutationReport.aborted(operation, "no save file loaded")
        try:
            return mutate(self.document, *args)
        except (PreconditionError, ReferenceDataError) as e:
            self.log.warning("%s aborted: %s", operation, e)
            return MutationReport.aborted(operation, str(e))

    def max_own_ingredients(self, ref: Optional[ReferenceData]) -> MutationReport:
        return self._run_bulk("MaxOwnIngredients", max_own_ingredients, ref)

    def max_own_materials(self, ref: Optional[ReferenceData]) -> MutationReport:
        return self._run_bulk("MaxOwnMaterials", max_own_materials, ref)

    def max_all_ingredients(self, ref: Optional[ReferenceData]) -> MutationReport:
        return self._run_bulk("MaxAllIngredients", max_all_ingredients, ref)

    def max_own_staff_level(self) -> MutationReport:
        return self._run_bulk("MaxOwnStaffLevel", max_own_staff_level)
