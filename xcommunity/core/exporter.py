"""JSON export utilities for collected profiles."""

import os
import tempfile
from pathlib import Path
from typing import Iterable

from pydantic import TypeAdapter

from xcommunity.models.profile import Profile


_PROFILE_LIST = TypeAdapter(list[Profile])


def to_json(profiles: Iterable[Profile], indent: int = 2) -> str:
    """
    Serialize profiles to a JSON array string.

    Args:
        profiles: Profiles in output order
        indent: JSON indentation level

    Returns:
        JSON string (non-ASCII characters are kept as-is)
    """
    return _PROFILE_LIST.dump_json(list(profiles), indent=indent).decode("utf-8")


def to_dicts(profiles: Iterable[Profile]) -> list[dict]:
    """Convert profiles to plain dictionaries."""
    return _PROFILE_LIST.dump_python(list(profiles), mode="json")


def write_bytes_atomic(path: str | Path, data: bytes) -> Path:
    """
    Write bytes to a file via a temporary sibling file and a rename.

    A concurrent reader sees either the previous content or the new content,
    never a partially written file.

    Args:
        path: Destination file
        data: Content to write

    Returns:
        Path to the written file

    Raises:
        OSError: If the directory can't be created or the write fails
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path


def write_text_atomic(path: str | Path, text: str) -> Path:
    """Atomically write UTF-8 text, see write_bytes_atomic."""
    return write_bytes_atomic(path, text.encode("utf-8"))


def save_profiles(profiles: Iterable[Profile], filepath: str | Path, indent: int = 2) -> Path:
    """
    Save profiles to a JSON file atomically.

    Args:
        profiles: Profiles in output order
        filepath: Output file path
        indent: JSON indentation level

    Returns:
        Path to saved file
    """
    return write_text_atomic(filepath, to_json(profiles, indent=indent) + "\n")


def load_profiles(filepath: str | Path) -> list[Profile]:
    """
    Load profiles from a JSON array file.

    Args:
        filepath: Path to JSON file

    Returns:
        Profiles in file order
    """
    path = Path(filepath)
    return _PROFILE_LIST.validate_json(path.read_text(encoding="utf-8"))
