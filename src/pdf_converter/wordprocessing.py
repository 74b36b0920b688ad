"""Word (.docx) to HTML for the browser render path.

Only structure the browser needs to paginate is carried over: headings,
paragraph alignment, bold/italic/underline runs and tables with their
merged cells. Embedded images and floating shapes are dropped.
"""

from __future__ import annotations

import html
import logging
import zipfile
from dataclasses import dataclass
from io import BytesIO

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.opc.exceptions import PackageNotFoundError
from docx.table import Table
from docx.text.paragraph import Paragraph

from .errors import StrategyExecutionError
from .models import ConversionOptions
from .tables import page_rule

logger = logging.getLogger(__name__)

_ALIGNMENTS = {
    WD_ALIGN_PARAGRAPH.CENTER: "center",
    WD_ALIGN_PARAGRAPH.RIGHT: "right",
    WD_ALIGN_PARAGRAPH.JUSTIFY: "justify",
}

_STYLESHEET = """
    body { font-family: 'Calibri', 'Segoe UI', Arial, sans-serif; font-size: 11pt; color: #000; }
    p { margin: 0 0 8pt 0; line-height: 1.3; }
    table { border-collapse: collapse; width: 100%; margin: 8pt 0; }
    td { border: 1px solid #999; padding: 4pt; vertical-align: top; }
"""


def _heading_level(paragraph: Paragraph) -> int | None:
    style = paragraph.style
    name = style.name if style is not None else ""
    if name == "Title":
        return 1
    if name.startswith("Heading "):
        suffix = name.removeprefix("Heading ").strip()
        if suffix.isdigit():
            return min(max(int(suffix), 1), 6)
    return None


def _render_runs(paragraph: Paragraph) -> str:
    parts: list[str] = []
    for run in paragraph.runs:
        text = html.escape(run.text)
        if not text:
            continue
        text = text.replace("\n", "<br>")
        if run.underline:
            text = f"<u>{text}</u>"
        if run.italic:
            text = f"<em>{text}</em>"
        if run.bold:
            text = f"<strong>{text}</strong>"
        parts.append(text)
    return "".join(parts)


def render_paragraph(paragraph: Paragraph) -> str:
    content = _render_runs(paragraph)
    align = _ALIGNMENTS.get(paragraph.alignment)
    style = f' style="text-align: {align}"' if align else ""
    level = _heading_level(paragraph)
    if level is not None:
        return f"<h{level}{style}>{content}</h{level}>"
    return f"<p{style}>{content or '&nbsp;'}</p>"


@dataclass(slots=True)
class _TableCell:
    html: str
    col_span: int = 1
    row_span: int = 1

    def to_html(self) -> str:
        attrs = ""
        if self.col_span > 1:
            attrs += f' colspan="{self.col_span}"'
        if self.row_span > 1:
            attrs += f' rowspan="{self.row_span}"'
        return f"<td{attrs}>{self.html}</td>"


def render_table(table: Table) -> str:
    # python-docx repeats the same <w:tc> for every grid slot a merged cell
    # occupies, horizontally and vertically.
    emitted: dict[object, _TableCell] = {}
    rows: list[list[_TableCell]] = []
    for row in table.rows:
        rendered: list[_TableCell] = []
        previous = None
        for cell in row.cells:
            element = cell._tc
            if element is previous:
                continue
            previous = element
            existing = emitted.get(element)
            if existing is not None:
                existing.row_span += 1
                continue
            body = "".join(render_paragraph(paragraph) for paragraph in cell.paragraphs)
            entry = _TableCell(html=body, col_span=max(1, cell.grid_span))
            emitted[element] = entry
            rendered.append(entry)
        rows.append(rendered)
    lines = ["<table>"]
    for cells in rows:
        lines.append("<tr>" + "".join(cell.to_html() for cell in cells) + "</tr>")
    lines.append("</table>")
    return "\n".join(lines)


def document_to_html(data: bytes, options: ConversionOptions) -> str:
    try:
        document = Document(BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise StrategyExecutionError(f"Could not read Word document: {exc}") from exc

    body: list[str] = []
    for block in document.iter_inner_content():
        if isinstance(block, Table):
            body.append(render_table(block))
        else:
            body.append(render_paragraph(block))
    logger.debug("Rendered %d Word block(s) to HTML", len(body))

    title = html.escape(options.file_name_stem)
    return "\n".join(
        [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '<meta charset="utf-8">',
            f"<title>{title}</title>",
            f"<style>\n    {page_rule(options)}{_STYLESHEET}</style>",
            "</head>",
            "<body>",
            *body,
            "</body>",
            "</html>",
        ]
    )


__all__ = ["render_paragraph", "render_table", "document_to_html"]
