"""File system helpers shared across the pipeline."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any

_EXTENSION_PATTERN = re.compile(r"^[a-z0-9]+$")


def ensure_dir(path: str | Path) -> Path:
    """Create the directory if it does not exist."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def read_binary(path: str | Path) -> bytes:
    """Read binary content from a file."""
    with open(path, "rb") as handle:
        return handle.read()


def write_text(path: str | Path, content: str) -> Path:
    """Write UTF-8 text to disk."""
    target = Path(path)
    ensure_dir(target.parent)
    target.write_text(content, encoding="utf-8")
    return target


def write_json(path: str | Path, data: Any) -> Path:
    """Serialize a Python object as JSON to disk."""
    payload = json.dumps(data, indent=2, ensure_ascii=False)
    return write_text(path, payload)


def guess_extension(path: str | Path) -> str | None:
    """Extract the file extension (without leading dot), or None if unusable."""
    suffix = Path(path).suffix
    ext = suffix[1:].lower() if suffix else ""
    return ext if _EXTENSION_PATTERN.match(ext) else None


def staged_name(run_id: str, index: int, filename: str, default_extension: str) -> str:
    """Engine-side name for input ``index``: ``<run_id>-input<index>.<ext>``."""
    ext = guess_extension(filename) or default_extension
    return f"{run_id}-input{index}.{ext}"


def atomic_write(path: str | Path, content: bytes) -> Path:
    """Write binary content to disk atomically."""
    target = Path(path)
    ensure_dir(target.parent)
    temp_path = target.with_suffix(target.suffix + ".tmp")
    with open(temp_path, "wb") as handle:
        handle.write(content)
    os.replace(temp_path, target)
    return target
