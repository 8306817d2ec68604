from __future__ import annotations

import logging
import os
import shutil
import sys
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional

from platformdirs import PlatformDirs

from ..errors import SaveIOError

logger = logging.getLogger(__name__)

GAME_NAME = "DAVE THE DIVER"
GAME_PUBLISHER = "nexon"
SAVE_SUBDIR = "SteamSData"
SAVE_PREFIX = "GameSave"
SAVE_SUFFIX = "_GD.sav"

BACKUP_FOLDER_NAME = "DaveSaveEd_Backups"
FALLBACK_BACKUP_FOLDER_NAME = "backups"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


# Backups


def default_backup_dir(save_path: Path, folder_name: str = BACKUP_FOLDER_NAME) -> Path:
    """Return the folder backups of ``save_path`` go to.

    A dedicated folder under the system temporary directory is preferred; if no
    temporary directory can be determined, a ``backups`` folder next to the save
    is used instead.
    """
    try:
        return Path(tempfile.gettempdir()) / folder_name
    except OSError as exc:
        logger.error("Failed to get system temporary path (%s). Falling back to save directory backup.", exc)
        return Path(save_path).parent / FALLBACK_BACKUP_FOLDER_NAME


def backup_filename(save_path: Path, when: Optional[datetime] = None) -> str:
    """``<stem>_<YYYYMMDD_HHMMSS><suffix>`` for a backup taken at ``when`` (local time)."""
    save_path = Path(save_path)
    stamp = (when or datetime.now()).strftime(BACKUP_TIMESTAMP_FORMAT)
    return f"{save_path.stem}_{stamp}{save_path.suffix}"


def create_backup(save_path: Path, backup_dir: Path, when: Optional[datetime] = None) -> Path:
    """Copy the on-disk save into ``backup_dir`` and return the copy's path.

    An existing backup with the same timestamped name is overwritten.
    """
    backup_path = Path(backup_dir) / backup_filename(save_path, when)
    try:
        ensure_dir(Path(backup_dir))
        shutil.copy2(save_path, backup_path)
    except OSError as e:
        raise SaveIOError(f"Could not back up {save_path} to {backup_path}: {e}") from e
    logger.info("Original save file backed up to: %s", backup_path)
    return backup_path


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Atomically write bytes to a path using a temporary file and replace.

    Ensures that either the old file remains or the new file fully replaces it.
    """
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=path.name, suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    finally:
        if os.path.exists(tmp_name):
            try:
                os.remove(tmp_name)
            except OSError:
                logger.debug("Could not remove temp file %s", tmp_name, exc_info=True)


# Save discovery


def default_save_root() -> Path:
    """Return the folder the game keeps its per-account save folders in.

    Windows: %USERPROFILE%\\AppData\\LocalLow\\nexon\\DAVE THE DIVER\\SteamSData
    Others:  the platformdirs user data dir for the game, plus SteamSData
    """
    if sys.platform.startswith("win"):
        local = os.environ.get("LOCALAPPDATA")
        if local:
            base = Path(local).parent / "LocalLow"
        else:
            logger.error("LOCALAPPDATA environment variable not found; using the home directory.")
            base = Path.home() / "AppData" / "LocalLow"
        return base / GAME_PUBLISHER / GAME_NAME / SAVE_SUBDIR
    dirs = PlatformDirs(appname=GAME_NAME, appauthor=GAME_PUBLISHER)
    return Path(dirs.user_data_dir) / SAVE_SUBDIR


def find_steam_id_dir(base: Path) -> Path:
    """Return the first all-digit (SteamID) subfolder of ``base``, or ``base`` itself."""
    base = Path(base)
    if base.is_dir():
        for child in sorted(base.iterdir()):
            if child.is_dir() and child.name.isdigit():
                logger.info("Found SteamID folder: %s", child)
                return child
    logger.warning("Could not find a SteamID folder under: %s", base)
    return base


def is_save_file_name(name: str) -> bool:
    return len(name) > 10 and name.startswith(SAVE_PREFIX) and name.endswith(SAVE_SUFFIX)


def find_latest_save(directory: Path) -> Optional[Path]:
    """Newest ``GameSave*_GD.sav`` file in ``directory`` by modification time."""
    directory = Path(directory)
    if not directory.is_dir():
        return None
    latest: Optional[Path] = None
    latest_mtime = 0.0
    for entry in directory.iterdir():
        if not entry.is_file() or not is_save_file_name(entry.name):
            continue
        try:
            mtime = entry.stat().st_mtime
        except OSError as e:
            logger.error("Error getting write time for %s: %s", entry.name, e)
            continue
        if latest is None or mtime > latest_mtime:
            latest, latest_mtime = entry, mtime
    return latest


def locate_latest_save(root: Optional[Path] = None) -> tuple[Path, Optional[Path]]:
    """Resolve the save folder and its newest save file.

    Returns ``(save_dir, latest_save_or_None)``.
    """
    save_dir = find_steam_id_dir(Path(root) if root else default_save_root())
    latest = find_latest_save(save_dir)
    if latest is not None:
        logger.info("Identified most recent save file: %s", latest)
    else:
        logger.info("No %s*%s files found in %s", SAVE_PREFIX, SAVE_SUFFIX, save_dir)
    return save_dir, latest
