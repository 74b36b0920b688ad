from io import BytesIO
from pathlib import Path

import pytest
from reportlab.pdfgen import canvas

from pdf_converter.errors import StrategyExecutionError
from pdf_converter.utils import (
    count_pdf_pages,
    file_stem,
    generate_run_id,
    sanitize_file_name,
    scoped_temp_dir,
)


def test_sanitize_file_name_strips_accents() -> None:
    assert sanitize_file_name("Informe año 2024 (final).xlsx") == "Informe_ano_2024_final_xlsx"


def test_sanitize_file_name_defaults_and_truncates() -> None:
    assert sanitize_file_name("") == "document"
    assert sanitize_file_name("???") == "document"
    assert len(sanitize_file_name("a" * 80)) == 50


def test_file_stem() -> None:
    assert file_stem("report.final.docx") == "report.final"
    assert file_stem(None) is None


def test_generate_run_id_unique() -> None:
    first = generate_run_id("test")
    second = generate_run_id("test")
    assert first != second
    assert first.startswith("test-")


def test_scoped_temp_dir_is_removed(tmp_path: Path) -> None:
    with scoped_temp_dir(tmp_path / "root") as workdir:
        (workdir / "input.bin").write_bytes(b"x")
        assert workdir.exists()
    assert not workdir.exists()
    assert list((tmp_path / "root").iterdir()) == []


def test_scoped_temp_dir_is_removed_on_error(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError):
        with scoped_temp_dir(tmp_path) as workdir:
            raise RuntimeError("boom")
    assert not workdir.exists()


def test_count_pdf_pages() -> None:
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer)
    for _ in range(3):
        pdf.showPage()
    pdf.save()
    assert count_pdf_pages(buffer.getvalue()) == 3


def test_count_pdf_pages_rejects_garbage() -> None:
    with pytest.raises(StrategyExecutionError):
        count_pdf_pages(b"not a pdf")
