"""Page geometry and box-fitting math.

All values are PDF points (1/72 inch) in a bottom-left origin coordinate
space, which is what reportlab and the PDF format itself use.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import InvalidGeometry
from .models import FitMode, Orientation, PageSize

PAGE_SIZES_PT: dict[PageSize, tuple[float, float]] = {
    PageSize.A4: (595.28, 841.89),
    PageSize.A3: (841.89, 1190.55),
    PageSize.LETTER: (612.0, 792.0),
    PageSize.LEGAL: (612.0, 1008.0),
    PageSize.TABLOID: (792.0, 1224.0),
}

# Smallest collage cell that can still hold a legible image (a quarter inch).
MIN_CELL_PT = 18.0


@dataclass(frozen=True, slots=True)
class PageGeometry:
    width_pt: float
    height_pt: float

    def swapped(self) -> "PageGeometry":
        return PageGeometry(width_pt=self.height_pt, height_pt=self.width_pt)


@dataclass(frozen=True, slots=True)
class LayoutBox:
    x: float
    y: float
    width: float
    height: float

    def offset(self, dx: float, dy: float) -> "LayoutBox":
        return LayoutBox(x=self.x + dx, y=self.y + dy, width=self.width, height=self.height)


def page_dimensions(
    page_size: PageSize | str | None,
    orientation: Orientation | str | None = Orientation.PORTRAIT,
) -> PageGeometry:
    """Return the page geometry for a size and orientation.

    Unknown sizes fall back to A4; landscape is the 90 degree swap of the
    portrait pair.
    """

    width, height = PAGE_SIZES_PT[PageSize.parse(page_size)]
    geometry = PageGeometry(width_pt=width, height_pt=height)
    if Orientation.parse(orientation) is Orientation.LANDSCAPE:
        return geometry.swapped()
    return geometry


def fit_box(
    source_width: float,
    source_height: float,
    max_width: float,
    max_height: float,
    fit_mode: FitMode | str = FitMode.CONTAIN,
) -> LayoutBox:
    """Scale a source rectangle into a bound and centre it there.

    ``contain`` keeps the whole source visible, ``cover`` fills the bound
    (overflowing one axis when the aspect ratios differ) and ``fill`` stretches
    to the bound exactly. The returned box is relative to the bound's origin.
    """

    if max_width <= 0 or max_height <= 0:
        raise InvalidGeometry(f"Layout bound {max_width:.2f}x{max_height:.2f}pt has no area")
    if source_width <= 0 or source_height <= 0:
        raise InvalidGeometry(f"Source size {source_width}x{source_height} has no area")

    mode = FitMode.parse(fit_mode)
    if mode is FitMode.FILL:
        width, height = max_width, max_height
    else:
        width_scale = max_width / source_width
        height_scale = max_height / source_height
        if mode is FitMode.COVER:
            scale = max(width_scale, height_scale)
        else:
            scale = min(width_scale, height_scale)
        width, height = source_width * scale, source_height * scale

    return LayoutBox(
        x=(max_width - width) / 2,
        y=(max_height - height) / 2,
        width=width,
        height=height,
    )


def printable_area(page: PageGeometry, margin_pt: float) -> tuple[float, float]:
    width = page.width_pt - 2 * margin_pt
    height = page.height_pt - 2 * margin_pt
    if width <= 0 or height <= 0:
        raise InvalidGeometry(
            f"Margin of {margin_pt}pt leaves no printable area on a "
            f"{page.width_pt}x{page.height_pt}pt page"
        )
    return width, height


def collage_cell_size(
    page: PageGeometry,
    columns: int,
    rows: int,
    spacing_pt: float,
    margin_pt: float,
) -> tuple[float, float]:
    cell_width = (page.width_pt - 2 * margin_pt - spacing_pt * (columns - 1)) / columns
    cell_height = (page.height_pt - 2 * margin_pt - spacing_pt * (rows - 1)) / rows
    if cell_width < MIN_CELL_PT or cell_height < MIN_CELL_PT:
        raise InvalidGeometry(
            f"A {columns}x{rows} grid with {spacing_pt}pt spacing and {margin_pt}pt margins "
            f"leaves {cell_width:.2f}x{cell_height:.2f}pt cells (minimum {MIN_CELL_PT}pt)"
        )
    return cell_width, cell_height


__all__ = [
    "PAGE_SIZES_PT",
    "MIN_CELL_PT",
    "PageGeometry",
    "LayoutBox",
    "page_dimensions",
    "fit_box",
    "printable_area",
    "collage_cell_size",
]
