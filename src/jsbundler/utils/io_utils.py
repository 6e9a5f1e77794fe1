"""
Centralized file I/O utilities.

- Single place for encoding and path-separator handling
- Use Path.read_text() consistently (no raw open/read)
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from .config import DEFAULT_FILE_ENCODING, PATH_SEPARATOR


def read_source_file(path: Union[Path, str]) -> str:
    """Read source file with standard encoding."""
    p = Path(path) if not isinstance(path, Path) else path
    return p.read_text(encoding=DEFAULT_FILE_ENCODING)


def normalize_path(path: Union[Path, str]) -> str:
    """Absolute, dot-free path using '/' separators on every host."""
    normalized = os.path.normpath(os.path.abspath(str(path)))
    return normalized.replace("\\", PATH_SEPARATOR)


def write_text_atomic(path: Union[Path, str], content: str, mode: Optional[int] = None) -> Path:
    """
    Write content to path via a temp file in the same directory and rename it
    into place, so readers never observe a half-written artifact.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=str(target.parent))
    try:
        with os.fdopen(fd, "w", encoding=DEFAULT_FILE_ENCODING, newline="") as handle:
            handle.write(content)
        if mode is not None and os.name != "nt":
            os.chmod(tmp_name, mode)
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return target


def display_path(path: Union[Path, str], root: Union[Path, str]) -> str:
    """Path relative to root for diagnostics; paths outside root stay absolute."""
    path, root = normalize_path(path), normalize_path(root)
    if path == root:
        return "."
    if path.startswith(root.rstrip(PATH_SEPARATOR) + PATH_SEPARATOR):
        return path[len(root.rstrip(PATH_SEPARATOR)) + 1:]
    return path
