"""Crash-safe snapshot files for the config and the history ring buffer.

Each snapshot has exactly one writer, the process owning the data
directory. A write lands in ``<name>.tmp``, is fsynced, then swapped in
with ``os.replace``: after a power cut the file holds either the old or the
new snapshot, never a mix. A leftover ``.tmp`` (or a ``.lock`` from older
releases) is ignored and overwritten by the next save.
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Union

from pumpguard.domain.exceptions import StorageError

PathLike = Union[str, "os.PathLike[str]"]


def write_bytes_atomic(path: PathLike, data: bytes) -> None:
    """Replace ``path`` with ``data``.

    Raises:
        StorageError: The directory or file is not writable.
    """
    target = Path(path)
    tmp = target.with_name(target.name + ".tmp")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, target)
    except OSError as exc:
        raise StorageError(f"Cannot write {target}: {exc}", detail={"path": str(target)}) from exc


def read_bytes(path: PathLike) -> bytes:
    """
    Raises:
        FileNotFoundError: Nothing has been persisted yet.
        StorageError: The file exists but could not be read.
    """
    target = Path(path)
    try:
        return target.read_bytes()
    except FileNotFoundError:
        raise
    except OSError as exc:
        raise StorageError(f"Cannot read {target}: {exc}", detail={"path": str(target)}) from exc


def write_json_atomic(path: PathLike, data: Dict[str, Any]) -> None:
    write_bytes_atomic(path, json.dumps(data, indent=2, sort_keys=True).encode("utf-8"))


def read_json(path: PathLike) -> Dict[str, Any]:
    """
    Raises:
        FileNotFoundError: Nothing has been persisted yet.
        StorageError: The file could not be read.
        ValueError: The file is not a JSON object.
    """
    data = json.loads(read_bytes(path).decode("utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return data
