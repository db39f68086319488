from __future__ import annotations

from trello_discord_notifier.adapters.storage.fs_storage import ensure_dir, write_atomic_bytes
from trello_discord_notifier.adapters.storage.snapshot_store import (
    empty_snapshot,
    load_snapshot,
    save_snapshot,
)

__all__ = [
    "empty_snapshot",
    "ensure_dir",
    "load_snapshot",
    "save_snapshot",
    "write_atomic_bytes",
]
