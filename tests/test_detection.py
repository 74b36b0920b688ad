from io import BytesIO
from zipfile import ZipFile

import pytest

from pdf_converter.detection import (
    OLE2_SIGNATURE,
    DetectionError,
    detect_document_class,
    sniff_document_class,
)
from pdf_converter.models import DocumentClass


def _zip_with(name: str) -> bytes:
    buffer = BytesIO()
    with ZipFile(buffer, "w") as archive:
        archive.writestr("[Content_Types].xml", "<Types/>")
        archive.writestr(name, "<root/>")
    return buffer.getvalue()


def test_detects_xlsx_from_zip_content():
    result = detect_document_class(_zip_with("xl/workbook.xml"), filename="renamed.bin")
    assert result.document_class is DocumentClass.SPREADSHEET


def test_detects_docx_from_zip_content():
    assert sniff_document_class(_zip_with("word/document.xml")) is DocumentClass.WORD


def test_detects_images_by_signature(make_image):
    assert sniff_document_class(make_image(fmt="PNG")) is DocumentClass.IMAGE
    assert sniff_document_class(make_image(fmt="JPEG")) is DocumentClass.IMAGE
    assert sniff_document_class(make_image(fmt="WEBP")) is DocumentClass.IMAGE


def test_legacy_office_relies_on_declared_type():
    data = OLE2_SIGNATURE + b"\x00" * 32
    result = detect_document_class(data, filename="old.xls", mime_type="application/vnd.ms-excel")
    assert result.document_class is DocumentClass.SPREADSHEET
    assert result.extension == ".xls"


def test_unknown_content_and_extension():
    with pytest.raises(DetectionError) as exc:
        detect_document_class(b"plain text", filename="notes.txt", mime_type="text/plain")
    assert "Unsupported file type" in str(exc.value)
    assert exc.value.code == "ValidationError"
