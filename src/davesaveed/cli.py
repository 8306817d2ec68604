from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Optional

from platformdirs import PlatformDirs

from . import __version__
from .config import ConfigError, Settings
from .editor import SaveGameManager
from .errors import ReferenceDataError
from .mutators.bulk import MutationReport
from .persistence.paths import locate_latest_save
from .refdata import ReferenceData, open_reference_store
from .utils.logging import configure_logging

APP_NAME = "DaveSaveEd"


def _resolve_save(args: argparse.Namespace, settings: Settings) -> Optional[Path]:
    if args.save:
        return Path(args.save)
    _, latest = locate_latest_save(settings.save.directory)
    if latest is None:
        print("No save file given and none could be found. Pass the save file path explicitly.", file=sys.stderr)
    return latest


def _open_manager(args: argparse.Namespace, settings: Settings) -> Optional[SaveGameManager]:
    save_path = _resolve_save(args, settings)
    if save_path is None:
        return None
    manager = SaveGameManager(
        backup_dir=settings.backup.directory,
        backup_folder_name=settings.backup.folder_name,
    )
    if not manager.load(save_path):
        print(f"Failed to load save file: {save_path}", file=sys.stderr)
        return None
    return manager


def _finish(manager: SaveGameManager, args: argparse.Namespace) -> int:
    if args.dry_run:
        print("Dry run: changes were not written.")
        return 0
    backup = manager.write()
    if backup is None:
        print(f"Failed to write save file: {manager.save_path}", file=sys.stderr)
        return 1
    print(f"Saved {manager.save_path}")
    print(f"Backup: {backup}")
    return 0


def _cmd_info(args: argparse.Namespace, settings: Settings) -> int:
    manager = _open_manager(args, settings)
    if manager is None:
        return 1
    print(f"Save file:        {manager.save_path}")
    print(f"Gold:             {manager.get_gold()}")
    print(f"Bei:              {manager.get_bei()}")
    print(f"Artisan's Flame:  {manager.get_artisans_flame()}")
    print(f"Followers:        {manager.get_follower_count()}")
    return 0


def _apply_values(manager: SaveGameManager, values: dict) -> bool:
    setters = {
        "gold": manager.set_gold,
        "bei": manager.set_bei,
        "flame": manager.set_artisans_flame,
        "followers": manager.set_follower_count,
    }
    applied = False
    for name, value in values.items():
        if value is None:
            continue
        stored = setters[name](value)
        if stored is None:
            print(f"Could not set {name}: section missing from save.", file=sys.stderr)
        else:
            print(f"{name} = {stored}")
            applied = True
    return applied


def _cmd_set(args: argparse.Namespace, settings: Settings) -> int:
    values = {"gold": args.gold, "bei": args.bei, "flame": args.flame, "followers": args.followers}
    if all(v is None for v in values.values()):
        print("Nothing to set: pass at least one of --gold, --bei, --flame, --followers.", file=sys.stderr)
        return 2
    manager = _open_manager(args, settings)
    if manager is None:
        return 1
    if not _apply_values(manager, values):
        return 1
    return _finish(manager, args)


def _cmd_max_currencies(args: argparse.Namespace, settings: Settings) -> int:
    manager = _open_manager(args, settings)
    if manager is None:
        return 1
    presets = settings.presets
    values = {
        "gold": presets.gold,
        "bei": presets.bei,
        "flame": presets.artisans_flame,
        "followers": presets.follower_count,
    }
    if not _apply_values(manager, values):
        return 1
    return _finish(manager, args)


def _report_and_finish(manager: SaveGameManager, report: MutationReport, args: argparse.Namespace) -> int:
    print(report.summary())
    if not report.performed:
        return 1
    return _finish(manager, args)


def _with_reference(
    args: argparse.Namespace,
    settings: Settings,
    run: Callable[[SaveGameManager, ReferenceData], MutationReport],
) -> int:
    ref_path = Path(args.refdb) if args.refdb else settings.reference.database
    if ref_path is None:
        print("No reference database configured. Pass --refdb or set reference.database.", file=sys.stderr)
        return 1
    manager = _open_manager(args, settings)
    if manager is None:
        return 1
    try:
        store = open_reference_store(ref_path)
    except ReferenceDataError as e:
        print(f"Cannot open reference database: {e}", file=sys.stderr)
        return 1
    with store:
        report = run(manager, store)
    return _report_and_finish(manager, report, args)


def _cmd_max_ingredients(args: argparse.Namespace, settings: Settings) -> int:
    if args.all:
        return _with_reference(args, settings, lambda m, ref: m.max_all_ingredients(ref))
    return _with_reference(args, settings, lambda m, ref: m.max_own_ingredients(ref))


def _cmd_max_materials(args: argparse.Namespace, settings: Settings) -> int:
    return _with_reference(args, settings, lambda m, ref: m.max_own_materials(ref))


def _cmd_max_staff(args: argparse.Namespace, settings: Settings) -> int:
    manager = _open_manager(args, settings)
    if manager is None:
        return 1
    return _report_and_finish(manager, manager.max_own_staff_level(), args)


def _cmd_locate(args: argparse.Namespace, settings: Settings) -> int:
    save_dir, latest = locate_latest_save(settings.save.directory)
    print(f"Save directory: {save_dir}")
    print(f"Latest save:    {latest if latest is not None else '(none found)'}")
    return 0 if latest is not None else 1


def _cmd_write_settings(args: argparse.Namespace, settings: Settings) -> int:
    settings.save_to(Path(args.path))
    print(f"Settings written to {args.path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="davesaveed", description="Dave the Diver save editor")
    p.add_argument("--settings", type=Path, default=None, help="Path to a settings YAML file overriding defaults")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--debug", action="store_true", help="Enable verbose debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    def save_command(name: str, help_text: str, mutating: bool = True) -> argparse.ArgumentParser:
        sp = sub.add_parser(name, help=help_text)
        sp.add_argument("save", nargs="?", help="Save file (default: newest GameSave_XX_GD.sav found)")
        if mutating:
            sp.add_argument("--dry-run", action="store_true", help="Apply changes in memory only; do not write")
        return sp

    info = save_command("info", "Show currencies and follower count", mutating=False)
    info.set_defaults(func=_cmd_info)

    s = save_command("set", "Set currencies and follower count")
    s.add_argument("--gold", type=int)
    s.add_argument("--bei", type=int)
    s.add_argument("--flame", type=int, help="Artisan's Flame")
    s.add_argument("--followers", type=int)
    s.set_defaults(func=_cmd_set)

    mc = save_command("max-currencies", "Set every currency and the follower count to the preset values")
    mc.set_defaults(func=_cmd_max_currencies)

    mi = save_command("max-ingredients", "Max owned ingredients (or every known ingredient with --all)")
    mi.add_argument("--all", action="store_true", help="Also add ingredients not yet owned")
    mi.add_argument("--refdb", help="Reference database (SQLite file or SQL dump)")
    mi.set_defaults(func=_cmd_max_ingredients)

    mm = save_command("max-materials", "Max owned inventory materials")
    mm.add_argument("--refdb", help="Reference database (SQLite file or SQL dump)")
    mm.set_defaults(func=_cmd_max_materials)

    ms = save_command("max-staff", "Raise all hired staff to the maximum level")
    ms.set_defaults(func=_cmd_max_staff)

    loc = sub.add_parser("locate", help="Show the detected save folder and newest save file")
    loc.set_defaults(func=_cmd_locate)

    ws = sub.add_parser("write-settings", help="Write the effective settings to a YAML file")
    ws.add_argument("path", help="Destination YAML file")
    ws.set_defaults(func=_cmd_write_settings)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = Settings.load(user_path=args.settings)
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return 1

    level = logging.DEBUG if args.debug else getattr(logging, settings.logging.level)
    log_dir = None
    if settings.logging.to_file:
        log_dir = settings.logging.directory or Path(PlatformDirs(appname=APP_NAME, appauthor=False).user_log_dir)
    configure_logging(level=level, log_dir=log_dir, app_name=APP_NAME)
    return args.func(args, settings)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
