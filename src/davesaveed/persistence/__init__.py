"""Save file persistence for Dave the Diver.

This package provides:
- The XOR codec between on-disk save bytes and the JSON document text
- SaveDocument, the in-memory document with guarded section accessors
- Backup naming, atomic writes and save folder discovery
"""

from .codec import (
    XOR_KEY,
    decode_save,
    decode_text,
    dump_document,
    encode_save,
    encode_text,
    parse_document,
    xor_transform,
)
from .document import MAX_CURRENCY, SaveDocument
from .paths import (
    atomic_write_bytes,
    backup_filename,
    create_backup,
    default_backup_dir,
    default_save_root,
    find_latest_save,
    locate_latest_save,
)

__all__ = [
    "XOR_KEY",
    "decode_save",
    "decode_text",
    "dump_document",
    "encode_save",
    "encode_text",
    "parse_document",
    "xor_transform",
    "MAX_CURRENCY",
    "SaveDocument",
    "atomic_write_bytes",
    "backup_filename",
    "create_backup",
    "default_backup_dir",
    "default_save_root",
    "find_latest_save",
    "locate_latest_save",
]
