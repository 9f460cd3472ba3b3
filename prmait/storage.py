"""Reading and encoding the one-document-per-file JSON store."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, TypeVar

from .errors import StoredFileError

T = TypeVar("T")


def json_files(directory: Path) -> list[Path]:
    """The ``*.json`` files directly inside ``directory`` (sorted by name)."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix == ".json")


def load_document(path: Path, parse: Callable[[Any], T]) -> T:
    """Read ``path`` and hand the decoded JSON to ``parse``.

    Every failure is reported with the offending file name attached.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise StoredFileError(path.name, f"could not be read: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise StoredFileError(path.name, f"is not valid JSON: {exc}") from exc
    try:
        return parse(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise StoredFileError(path.name, f"does not match the expected shape: {exc!r}") from exc


def encode_document(data: Any, file_name: str) -> bytes:
    try:
        return (json.dumps(data, indent=2, ensure_ascii=False) + "\n").encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise StoredFileError(file_name, f"could not be encoded: {exc}") from exc
