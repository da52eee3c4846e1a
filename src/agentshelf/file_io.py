"""Text I/O helpers: tolerant decoding for library files and atomic writes."""

from __future__ import annotations

import os
import tempfile
import time
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path

_ATOMIC_REPLACE_MAX_RETRIES = 8
_ATOMIC_REPLACE_RETRY_SECONDS = 0.01

_FALLBACK_DECODERS = ("cp1252", "latin-1")


def _replace_file_with_retry(src: Path, dst: Path) -> None:
    last_error: OSError | None = None
    for attempt in range(_ATOMIC_REPLACE_MAX_RETRIES):
        try:
            src.replace(dst)
            return
        except PermissionError as exc:
            last_error = exc
        except OSError as exc:
            if exc.errno != 13:
                raise
            last_error = exc
        if attempt < _ATOMIC_REPLACE_MAX_RETRIES - 1:
            time.sleep(_ATOMIC_REPLACE_RETRY_SECONDS * (attempt + 1))
    if last_error is not None:
        raise last_error


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text to disk atomically so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f"{path.name}.", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as handle:
            handle.write(content)
        _replace_file_with_retry(tmp_path, path)
    finally:
        with suppress(OSError):
            tmp_path.unlink(missing_ok=True)


@dataclass(frozen=True, slots=True)
class ResilientTextRead:
    """Result payload for tolerant text decoding."""

    text: str
    decoder: str = "utf-8"
    used_fallback: bool = False
    used_replacement: bool = False


def read_text(path: Path) -> ResilientTextRead:
    """Read *path* as UTF-8, recovering from common legacy encodings.

    Library files are never rewritten here; callers that want the file
    normalized do that explicitly.
    """
    raw = path.read_bytes()
    try:
        return ResilientTextRead(text=raw.decode("utf-8-sig"))
    except UnicodeDecodeError:
        pass

    for decoder in _FALLBACK_DECODERS:
        try:
            text = raw.decode(decoder)
        except UnicodeDecodeError:
            continue
        return ResilientTextRead(text=text, decoder=decoder, used_fallback=True)

    return ResilientTextRead(
        text=raw.decode("utf-8", errors="replace"),
        decoder="utf-8-replace",
        used_fallback=True,
        used_replacement=True,
    )
