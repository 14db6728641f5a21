"""JSON record files: read, write, existence checks, directory listing.

This module is the only place that touches record files directly. It knows
nothing about tenancy rules.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, TypeVar

from acs.errors import CorruptRecordError, RecordNotFoundError
from acs.state.records import Record

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)


def exists(path: Path) -> bool:
    """True if ``path`` exists. Never raises."""
    try:
        return path.exists()
    except OSError:
        return False


def serialize(value: Record | dict[str, Any]) -> str:
    """Stable, human-diffable JSON with a trailing newline."""
    data = value.to_dict() if isinstance(value, Record) else value
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def read_record(path: Path, record_type: type[R]) -> R:
    """Load one record file.

    Raises RecordNotFoundError if the file is absent and CorruptRecordError if
    it is not valid JSON of the record's shape.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise RecordNotFoundError(f"Record not found: {path}") from None
    except UnicodeDecodeError as e:
        raise CorruptRecordError(path, "invalid UTF-8") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CorruptRecordError(path, f"invalid JSON ({e.msg} at line {e.lineno})") from e

    try:
        return record_type.from_dict(data)
    except (ValueError, TypeError) as e:
        raise CorruptRecordError(path, str(e)) from e


def write_record(path: Path, value: Record | dict[str, Any], mode: int | None = None) -> None:
    """Overwrite ``path`` with the serialized record.

    The content goes to a temporary sibling first and is then renamed over the
    target. When ``mode`` is given the temporary file is created with it, so
    the final file never exists with looser permissions.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    content = serialize(value)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        # mkstemp creates 0600; widen to the umask default unless restricted
        if mode is not None:
            os.fchmod(fd, mode)
        else:
            umask = os.umask(0)
            os.umask(umask)
            os.fchmod(fd, 0o666 & ~umask)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.debug("Wrote %s", path)


def list_records(directory: Path, record_type: type[R]) -> list[tuple[Path, R]]:
    """All ``*.json`` files directly inside ``directory``, unsorted.

    A missing directory yields an empty list.
    """
    if not directory.is_dir():
        return []
    out: list[tuple[Path, R]] = []
    for entry in directory.iterdir():
        if not entry.is_file() or entry.suffix != ".json":
            continue
        out.append((entry, read_record(entry, record_type)))
    return out
