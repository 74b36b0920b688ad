from io import BytesIO

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH

from pdf_converter.models import ConversionOptions, ConversionRequest, DocumentClass
from pdf_converter.strategies.render_engine import RenderEngineStrategy
from pdf_converter.config import BrowserConfig
from pdf_converter.wordprocessing import document_to_html


def _docx() -> bytes:
    document = Document()
    document.add_heading("Quarterly <report>", level=2)
    paragraph = document.add_paragraph("plain ")
    paragraph.add_run("bold").bold = True
    paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
    table = document.add_table(rows=2, cols=3)
    table.cell(0, 0).merge(table.cell(0, 1))
    table.cell(0, 2).text = "C"
    table.cell(0, 2).merge(table.cell(1, 2))
    table.cell(1, 0).text = "A2"
    buffer = BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def test_headings_runs_and_alignment() -> None:
    html = document_to_html(_docx(), ConversionOptions(file_name_stem="q1"))
    assert "<h2>Quarterly &lt;report&gt;</h2>" in html
    assert '<p style="text-align: center">plain <strong>bold</strong></p>' in html
    assert "<title>q1</title>" in html


def test_table_merges_become_spans() -> None:
    html = document_to_html(_docx(), ConversionOptions())
    assert '<td colspan="2">' in html
    assert '<td rowspan="2"><p>C</p></td>' in html
    # second row keeps only its own cells
    assert html.count("<tr>") == 2


def test_render_engine_builds_word_html() -> None:
    strategy = RenderEngineStrategy(BrowserConfig())
    html = strategy.build_html(ConversionRequest(DocumentClass.WORD, _docx()))
    assert html.startswith("<!DOCTYPE html>")
    assert "@page { size: A4; margin: 20.0pt; }" in html


def test_unreadable_word_document_fails_the_strategy() -> None:
    result = RenderEngineStrategy(BrowserConfig()).execute(
        ConversionRequest(DocumentClass.WORD, b"not a docx")
    )
    assert result.error_kind == "StrategyExecutionError"
