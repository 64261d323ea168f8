"""I/O utilities: file-name sanitization and output writers."""

from __future__ import annotations

from pathlib import Path

from meshexport.core.errors import IOWriteError

# Characters reserved in common filesystem / identifier contexts.
RESERVED_CHARS = (" ", "/", "\\", ":", "*", "?", '"', "<", ">", "|")


def sanitize_file_name(name: str) -> str:
    """Replace every reserved character with an underscore."""
    for ch in RESERVED_CHARS:
        name = name.replace(ch, "_")
    return name


def ensure_dir(path: Path) -> Path:
    """Create ``path`` (and parents) if missing. Existing directories are fine."""
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IOWriteError(path, str(e)) from e
    return path


def write_text(path: Path, text: str) -> Path:
    """Write UTF-8 text with '\\n' line endings on every platform."""
    path = Path(path)
    try:
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
    except OSError as e:
        raise IOWriteError(path, str(e)) from e
    return path


def write_bytes(path: Path, data: bytes) -> Path:
    path = Path(path)
    try:
        path.write_bytes(data)
    except OSError as e:
        raise IOWriteError(path, str(e)) from e
    return path
