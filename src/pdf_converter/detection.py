from __future__ import annotations

import mimetypes
import zipfile
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from .errors import ValidationError
from .models import DocumentClass

SPREADSHEET_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
WORD_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

EXTENSION_MAP: dict[str, DocumentClass] = {
    ".xlsx": DocumentClass.SPREADSHEET,
    ".xls": DocumentClass.SPREADSHEET,
    ".docx": DocumentClass.WORD,
    ".doc": DocumentClass.WORD,
    ".jpg": DocumentClass.IMAGE,
    ".jpeg": DocumentClass.IMAGE,
    ".png": DocumentClass.IMAGE,
    ".webp": DocumentClass.IMAGE,
    ".tif": DocumentClass.IMAGE,
    ".tiff": DocumentClass.IMAGE,
    ".gif": DocumentClass.IMAGE,
    ".bmp": DocumentClass.IMAGE,
}

MIME_MAP: dict[str, DocumentClass] = {
    SPREADSHEET_MIME: DocumentClass.SPREADSHEET,
    "application/vnd.ms-excel": DocumentClass.SPREADSHEET,
    WORD_MIME: DocumentClass.WORD,
    "application/msword": DocumentClass.WORD,
}

_IMAGE_SIGNATURES: tuple[bytes, ...] = (
    b"\xff\xd8\xff",
    b"\x89PNG\r\n\x1a\n",
    b"GIF87a",
    b"GIF89a",
    b"BM",
    b"II*\x00",
    b"MM\x00*",
)

# legacy .xls/.doc share the OLE2 compound file header
OLE2_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


class DetectionError(ValidationError):
    """Raised when the document class of an upload cannot be determined."""


@dataclass(slots=True)
class DetectionResult:
    document_class: DocumentClass
    mime_type: str
    extension: str


def _sniff_zip(data: bytes) -> DocumentClass | None:
    try:
        with zipfile.ZipFile(BytesIO(data)) as archive:
            names = archive.namelist()
    except zipfile.BadZipFile:
        return None
    if any(name.startswith("xl/") for name in names):
        return DocumentClass.SPREADSHEET
    if any(name.startswith("word/") for name in names):
        return DocumentClass.WORD
    return None


def sniff_document_class(data: bytes) -> DocumentClass | None:
    """Guess the document class from leading bytes only."""

    if data.startswith(b"PK\x03\x04"):
        return _sniff_zip(data)
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return DocumentClass.IMAGE
    if any(data.startswith(signature) for signature in _IMAGE_SIGNATURES):
        return DocumentClass.IMAGE
    return None


def _class_from_mime(mime_type: str | None) -> DocumentClass | None:
    if not mime_type:
        return None
    normalized = mime_type.split(";", 1)[0].strip().lower()
    if normalized.startswith("image/"):
        return DocumentClass.IMAGE
    return MIME_MAP.get(normalized)


def detect_document_class(
    data: bytes,
    *,
    filename: str | None = None,
    mime_type: str | None = None,
) -> DetectionResult:
    """Classify an upload by content, falling back to MIME type and extension.

    Byte sniffing wins over the declared type so a renamed file is still
    routed correctly. Legacy OLE2 ``.xls``/``.doc`` files carry no inner
    structure to sniff and rely on the declared type or extension.
    """

    extension = Path(filename).suffix.lower() if filename else ""
    declared = _class_from_mime(mime_type) or EXTENSION_MAP.get(extension)
    sniffed = sniff_document_class(data)
    if sniffed is None and data.startswith(OLE2_SIGNATURE):
        sniffed = declared if declared is not DocumentClass.IMAGE else None

    document_class = sniffed or declared
    if document_class is None:
        raise DetectionError(
            f"Unsupported file type: {mime_type or 'unknown'} ({extension or '<none>'})"
        )
    resolved_mime = mime_type or mimetypes.guess_type(filename or "")[0] or "application/octet-stream"
    return DetectionResult(document_class=document_class, mime_type=resolved_mime, extension=extension)


__all__ = [
    "SPREADSHEET_MIME",
    "WORD_MIME",
    "EXTENSION_MAP",
    "MIME_MAP",
    "OLE2_SIGNATURE",
    "DetectionError",
    "DetectionResult",
    "sniff_document_class",
    "detect_document_class",
]
