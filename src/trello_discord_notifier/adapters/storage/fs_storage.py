from __future__ import annotations

import os
import tempfile
from pathlib import Path


def ensure_dir(path: Path) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


def _fsync_dir_best_effort(dir_path: Path) -> None:
    """
    Best-effort directory fsync after atomic replace.

    Some platforms / filesystems may not support fsync on directories; failures are ignored.
    """
    try:
        fd = os.open(str(dir_path), os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def write_bytes(target_path: Path, data: bytes, *, fsync: bool = True) -> None:
    target = Path(target_path)
    ensure_dir(target.parent)

    with open(target, "wb") as f:
        f.write(data)
        f.flush()
        if fsync:
            os.fsync(f.fileno())


def write_atomic_bytes(target_path: Path, data: bytes, *, fsync: bool = True) -> None:
    """Write via a temp file in the target directory and `os.replace` it into place."""
    target = Path(target_path)
    parent = target.parent
    ensure_dir(parent)

    tmp_path: Path | None = None
    fd: int | None = None

    try:
        fd, tmp_name = tempfile.mkstemp(dir=str(parent), prefix=".tmp-")
        tmp_path = Path(tmp_name)
        _write_tmp_file(fd, data, fsync=fsync)
        fd = None

        _replace_tmp_with_target(tmp_path, target)

        if fsync:
            _fsync_dir_best_effort(parent)
    except Exception:
        _safe_close(fd)
        _safe_unlink(tmp_path)
        raise


def _write_tmp_file(fd: int, data: bytes, *, fsync: bool) -> None:
    with os.fdopen(fd, "wb") as f:
        f.write(data)
        f.flush()
        # mkstemp creates 0600 files; keep the state file readable like a plain write would.
        os.fchmod(f.fileno(), 0o644)
        if fsync:
            os.fsync(f.fileno())


def _replace_tmp_with_target(tmp_path: Path, target: Path) -> None:
    try:
        os.replace(tmp_path, target)
    except Exception:
        _safe_unlink(tmp_path)
        raise


def _safe_close(fd: int | None) -> None:
    if fd is None:
        return
    try:
        os.close(fd)
    except OSError:
        pass


def _safe_unlink(path: Path | None) -> None:
    if path is None:
        return
    try:
        path.unlink()
    except (FileNotFoundError, OSError):
        pass
