"""Spreadsheet to HTML table rendering with merged-cell spans."""

from __future__ import annotations

import datetime as dt
import html
import logging
import zipfile
from dataclasses import dataclass, field
from io import BytesIO
from typing import Sequence

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .errors import StrategyExecutionError
from .models import ConversionOptions, Orientation

logger = logging.getLogger(__name__)

CellValue = str | int | float | None


@dataclass(frozen=True, slots=True)
class MergeSpan:
    row_span: int = 1
    col_span: int = 1


@dataclass(frozen=True, slots=True)
class Cell:
    row: int
    col: int
    value: CellValue = None
    is_bold: bool = False
    merge_span: MergeSpan | None = None


@dataclass(slots=True)
class Sheet:
    name: str
    rows: list[list[Cell]] = field(default_factory=list)
    column_count: int = 0

    def cell(self, row: int, col: int) -> Cell | None:
        if row < 1 or row > len(self.rows):
            return None
        cells = self.rows[row - 1]
        if col < 1 or col > len(cells):
            return None
        return cells[col - 1]


@dataclass(slots=True)
class TableModel:
    sheets: list[Sheet] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class RenderedCell:
    text: str
    css_class: str = ""
    row_span: int = 1
    col_span: int = 1

    def to_html(self) -> str:
        attrs = f' class="{self.css_class}"' if self.css_class else ""
        if self.col_span > 1:
            attrs += f' colspan="{self.col_span}"'
        if self.row_span > 1:
            attrs += f' rowspan="{self.row_span}"'
        return f"<td{attrs}>{self.text}</td>"


@dataclass(slots=True)
class SheetTable:
    name: str
    rows: list[list[RenderedCell]] = field(default_factory=list)


def _format_value(value: object) -> CellValue:
    if value is None:
        return None
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    text = str(value)
    return text if text else None


def load_table_model(data: bytes) -> TableModel:
    """Read every worksheet of an ``.xlsx`` workbook into a :class:`TableModel`.

    Formulas render their cached result. Merge spans come from the
    worksheet's merged ranges and are attached to the top-left cell.
    """

    try:
        workbook = load_workbook(BytesIO(data), data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
        raise StrategyExecutionError(f"Could not read workbook: {exc}") from exc

    model = TableModel()
    try:
        for worksheet in workbook.worksheets:
            spans: dict[tuple[int, int], MergeSpan] = {
                (merged.min_row, merged.min_col): MergeSpan(
                    row_span=merged.max_row - merged.min_row + 1,
                    col_span=merged.max_col - merged.min_col + 1,
                )
                for merged in worksheet.merged_cells.ranges
            }

            column_count = worksheet.max_column if worksheet.max_row else 0
            sheet = Sheet(name=worksheet.title, column_count=column_count)
            for row_cells in worksheet.iter_rows(
                min_row=1, max_row=worksheet.max_row, max_col=column_count
            ):
                cells: list[Cell] = []
                for source in row_cells:
                    row, col = source.row, source.column
                    font = getattr(source, "font", None)
                    cells.append(
                        Cell(
                            row=row,
                            col=col,
                            value=_format_value(source.value),
                            is_bold=bool(font is not None and font.bold),
                            merge_span=spans.get((row, col)),
                        )
                    )
                sheet.rows.append(cells)
            model.sheets.append(sheet)
    finally:
        workbook.close()

    logger.debug("Loaded workbook with %d sheet(s)", len(model.sheets))
    return model


def _render_cell(cell: Cell) -> RenderedCell:
    classes: list[str] = []
    if isinstance(cell.value, (int, float)) and not isinstance(cell.value, bool):
        classes.append("number")
    if cell.is_bold:
        classes.append("bold")
    span = cell.merge_span
    if span is not None and (span.row_span > 1 or span.col_span > 1):
        classes.append("merged-cell")
    else:
        span = MergeSpan()
    text = "" if cell.value is None else html.escape(str(cell.value), quote=True)
    return RenderedCell(
        text=text,
        css_class=" ".join(classes),
        row_span=span.row_span,
        col_span=span.col_span,
    )


def covered_positions(sheet: Sheet) -> set[tuple[int, int]]:
    """Positions hidden under another cell's merge span (anchors excluded)."""

    covered: set[tuple[int, int]] = set()
    for cells in sheet.rows:
        for cell in cells:
            span = cell.merge_span
            if span is None:
                continue
            for row in range(cell.row, cell.row + span.row_span):
                for col in range(cell.col, cell.col + span.col_span):
                    if (row, col) != (cell.row, cell.col):
                        covered.add((row, col))
    return covered


def build_tables(model: TableModel) -> list[SheetTable]:
    tables: list[SheetTable] = []
    for sheet in model.sheets:
        table = SheetTable(name=sheet.name)
        covered = covered_positions(sheet)
        # last row index an earlier merge anchor reaches into
        spanned_until = 0
        for row_index, cells in enumerate(sheet.rows, start=1):
            populated = any(
                (cell.value is not None or cell.merge_span is not None)
                and (cell.row, cell.col) not in covered
                for cell in cells
            )
            if not populated and row_index > spanned_until:
                continue
            rendered: list[RenderedCell] = []
            for col in range(1, sheet.column_count + 1):
                if (row_index, col) in covered:
                    continue
                cell = sheet.cell(row_index, col) or Cell(row=row_index, col=col)
                if cell.merge_span is not None:
                    spanned_until = max(spanned_until, row_index + cell.merge_span.row_span - 1)
                rendered.append(_render_cell(cell))
            table.rows.append(rendered)
        tables.append(table)
    return tables


_STYLESHEET = """
    body {
      font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;
      margin: 0;
      padding: 20px;
      background: white;
      color: #333;
    }
    .worksheet { page-break-after: always; margin-bottom: 30px; }
    .worksheet:last-child { page-break-after: auto; }
    .worksheet-title {
      font-size: 20px;
      font-weight: bold;
      margin-bottom: 15px;
      color: #2c3e50;
      border-bottom: 2px solid #3498db;
      padding-bottom: 5px;
    }
    table { border-collapse: collapse; width: 100%; font-size: 11px; margin-top: 10px; }
    td, th { border: 1px solid #ddd; padding: 6px; text-align: left; vertical-align: top; }
    tr:nth-child(even) { background-color: #f9f9f9; }
    .number { text-align: right; font-family: 'Consolas', 'Courier New', monospace; }
    .bold { font-weight: bold; }
    .merged-cell { text-align: center; font-weight: bold; background-color: #e8f4f8; }
"""


def page_rule(options: ConversionOptions) -> str:
    orientation = " landscape" if options.orientation is Orientation.LANDSCAPE else ""
    return f"@page {{ size: {options.page_size.value}{orientation}; margin: {options.margin_pt}pt; }}"


def render_html(tables: Sequence[SheetTable], options: ConversionOptions) -> str:
    title = html.escape(options.file_name_stem)
    parts = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '<meta charset="utf-8">',
        f"<title>{title}</title>",
        f"<style>\n    {page_rule(options)}{_STYLESHEET}</style>",
        "</head>",
        "<body>",
    ]
    for table in tables:
        parts.append('<div class="worksheet">')
        parts.append(f'<div class="worksheet-title">{html.escape(table.name)}</div>')
        parts.append("<table>")
        for row in table.rows:
            parts.append("<tr>" + "".join(cell.to_html() for cell in row) + "</tr>")
        parts.append("</table>")
        parts.append("</div>")
    parts.append("</body>")
    parts.append("</html>")
    return "\n".join(parts)


def workbook_to_html(data: bytes, options: ConversionOptions) -> str:
    return render_html(build_tables(load_table_model(data)), options)


__all__ = [
    "MergeSpan",
    "Cell",
    "Sheet",
    "TableModel",
    "RenderedCell",
    "SheetTable",
    "load_table_model",
    "covered_positions",
    "build_tables",
    "render_html",
    "workbook_to_html",
]
