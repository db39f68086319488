from __future__ import annotations

import json
from pathlib import Path

import structlog
from pydantic import ValidationError

from trello_discord_notifier.adapters.storage.fs_storage import write_atomic_bytes, write_bytes
from trello_discord_notifier.domain.snapshot_models import Snapshot

log = structlog.get_logger(__name__)


def empty_snapshot() -> Snapshot:
    return Snapshot()


def load_snapshot(path: Path) -> Snapshot:
    """
    Load the previously persisted snapshot.

    A missing, unreadable or malformed file is not an error: the run continues from an
    empty snapshot, which reports every list and card as newly created.
    """
    path = Path(path)
    if not path.exists():
        log.info("state.not_found", path=str(path))
        return empty_snapshot()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        log.warning("state.unreadable", path=str(path), error=f"{exc.__class__.__name__}: {exc}")
        return empty_snapshot()

    if not isinstance(raw, dict):
        log.warning("state.unreadable", path=str(path), error="state root must be an object")
        return empty_snapshot()

    try:
        snapshot = Snapshot.model_validate(raw)
    except ValidationError as exc:
        log.warning(
            "state.invalid",
            path=str(path),
            errors=exc.error_count(),
        )
        return empty_snapshot()

    log.info(
        "state.loaded",
        path=str(path),
        cards=len(snapshot.cards),
        lists=len(snapshot.lists),
        last_check=snapshot.last_check,
    )
    return snapshot


def save_snapshot(
    path: Path,
    snapshot: Snapshot,
    *,
    atomic_write: bool = True,
    fsync: bool = True,
) -> None:
    data = json.dumps(snapshot.to_json_dict(), indent=2, ensure_ascii=False).encode("utf-8")
    if atomic_write:
        write_atomic_bytes(Path(path), data, fsync=fsync)
    else:
        write_bytes(Path(path), data, fsync=fsync)
    log.info("state.saved", path=str(path), cards=len(snapshot.cards), lists=len(snapshot.lists))
