from __future__ import annotations

import hashlib
import os
import re
import tempfile
import time
import unicodedata
from contextlib import contextmanager
from io import BytesIO
from pathlib import Path
from typing import Iterator

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from .errors import StrategyExecutionError


UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9\s_-]")
DEFAULT_FILE_STEM = "document"


def sanitize_file_name(value: str | None, max_length: int = 50) -> str:
    if not value:
        return DEFAULT_FILE_STEM
    decomposed = unicodedata.normalize("NFD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    normalized = UNSAFE_FILENAME_RE.sub("_", stripped)
    normalized = re.sub(r"\s+", "_", normalized)
    normalized = re.sub("_{2,}", "_", normalized)
    normalized = normalized.strip("_")[:max_length]
    return normalized or DEFAULT_FILE_STEM


def file_stem(filename: str | None) -> str | None:
    if not filename:
        return None
    return Path(filename).stem or None


def generate_run_id(prefix: str = "run") -> str:
    epoch_ms = int(time.time() * 1000)
    random_bits = hashlib.sha256(os.urandom(16)).hexdigest()[:8]
    return f"{prefix}-{epoch_ms}-{random_bits}"


def ensure_temp_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


@contextmanager
def scoped_temp_dir(root: Path, prefix: str = "conv-") -> Iterator[Path]:
    """Yield a private directory under *root*, removed on every exit path."""

    ensure_temp_dir(root)
    with tempfile.TemporaryDirectory(prefix=prefix, dir=root) as workdir:
        yield Path(workdir)


def atomic_write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile("wb", delete=False, dir=path.parent) as tmp:
        tmp.write(data)
        tmp.flush()
        os.fsync(tmp.fileno())
    os.replace(tmp.name, path)


def count_pdf_pages(data: bytes) -> int:
    try:
        return len(PdfReader(BytesIO(data)).pages)
    except (PdfReadError, ValueError) as exc:
        raise StrategyExecutionError(f"Backend returned an unreadable PDF: {exc}") from exc
