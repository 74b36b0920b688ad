"""Image decoding and page placement.

Placement is pure math over :mod:`pdf_converter.geometry`; drawing the
placed images onto a PDF is the layout strategy's job.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from io import BytesIO
from typing import Callable, Sequence

from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import PartialItemFailure, StrategyExecutionError
from .geometry import (
    LayoutBox,
    PageGeometry,
    collage_cell_size,
    fit_box,
    page_dimensions,
    printable_area,
)
from .models import RGB, FitMode, ConversionOptions

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SourceImage:
    """A decoded image with EXIF orientation already applied."""

    index: int
    image: Image.Image
    width: int
    height: int
    original_format: str | None = None


Decoder = Callable[[bytes, int], SourceImage]


def decode_image(data: bytes, index: int) -> SourceImage:
    if not data:
        raise PartialItemFailure(index, "empty image buffer")
    try:
        with Image.open(BytesIO(data)) as opened:
            image_format = opened.format
            opened.load()
            # rotate/flip before measuring so the box matches what is displayed
            image = ImageOps.exif_transpose(opened)
            if image is opened:
                image = opened.copy()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise PartialItemFailure(index, f"could not decode image: {exc}") from exc
    width, height = image.size
    return SourceImage(
        index=index,
        image=image,
        width=width,
        height=height,
        original_format=image_format,
    )


def layout_single_page(
    width: float,
    height: float,
    page: PageGeometry,
    margin_pt: float,
    fit_mode: FitMode | str = FitMode.CONTAIN,
) -> LayoutBox:
    max_width, max_height = printable_area(page, margin_pt)
    return fit_box(width, height, max_width, max_height, fit_mode).offset(margin_pt, margin_pt)


@dataclass(slots=True)
class Placement:
    source: SourceImage
    box: LayoutBox
    clip: LayoutBox


@dataclass(slots=True)
class PagePlacement:
    placements: list[Placement] = field(default_factory=list)


@dataclass(slots=True)
class SequenceLayout:
    page: PageGeometry
    pages: list[PagePlacement]
    failures: list[PartialItemFailure] = field(default_factory=list)
    background: RGB | None = None

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def warnings(self) -> list[str]:
        return [failure.message for failure in self.failures]


@dataclass(slots=True)
class CollageLayout(SequenceLayout):
    columns: int = 1
    rows: int = 1
    cell_width: float = 0.0
    cell_height: float = 0.0


def _decode_all(
    images: Sequence[bytes], decoder: Decoder
) -> tuple[list[SourceImage | None], list[PartialItemFailure]]:
    decoded: list[SourceImage | None] = []
    failures: list[PartialItemFailure] = []
    for index, data in enumerate(images):
        try:
            decoded.append(decoder(data, index))
        except PartialItemFailure as exc:
            logger.warning("Skipping image %d: %s", index, exc.message)
            failures.append(exc)
            decoded.append(None)
    return decoded, failures


def layout_sequence(
    images: Sequence[bytes],
    options: ConversionOptions,
    *,
    decoder: Decoder = decode_image,
) -> SequenceLayout:
    """Place each image on its own page.

    Undecodable images are skipped and recorded; the layout fails with
    :class:`StrategyExecutionError` only when nothing could be placed.
    """

    page = page_dimensions(options.page_size, options.orientation)
    max_width, max_height = printable_area(page, options.margin_pt)
    decoded, failures = _decode_all(images, decoder)

    pages: list[PagePlacement] = []
    for source in decoded:
        if source is None:
            continue
        box = layout_single_page(
            source.width, source.height, page, options.margin_pt, options.fit_mode
        )
        clip = LayoutBox(x=options.margin_pt, y=options.margin_pt, width=max_width, height=max_height)
        pages.append(PagePlacement([Placement(source=source, box=box, clip=clip)]))

    if not pages:
        raise StrategyExecutionError(
            f"None of the {len(images)} image(s) could be decoded", item_failures=failures
        )
    return SequenceLayout(page=page, pages=pages, failures=failures)


def layout_collage(
    images: Sequence[bytes],
    columns: int,
    rows: int,
    spacing_pt: float,
    page: PageGeometry,
    margin_pt: float,
    fit_mode: FitMode | str = FitMode.CONTAIN,
    *,
    background: RGB | None = None,
    decoder: Decoder = decode_image,
) -> CollageLayout:
    """Arrange images row-major into a ``columns`` x ``rows`` grid per page.

    The grid is validated before any image is decoded. Row 0 is the top row.
    An image that fails to decode leaves its cell empty.
    """

    cell_width, cell_height = collage_cell_size(page, columns, rows, spacing_pt, margin_pt)
    per_page = columns * rows
    total_pages = math.ceil(len(images) / per_page)
    decoded, failures = _decode_all(images, decoder)

    pages = [PagePlacement() for _ in range(total_pages)]
    for index, source in enumerate(decoded):
        if source is None:
            continue
        slot = index % per_page
        row, col = divmod(slot, columns)
        origin_x = margin_pt + col * (cell_width + spacing_pt)
        origin_y = page.height_pt - margin_pt - (row + 1) * cell_height - row * spacing_pt
        box = fit_box(source.width, source.height, cell_width, cell_height, fit_mode)
        clip = LayoutBox(x=origin_x, y=origin_y, width=cell_width, height=cell_height)
        pages[index // per_page].placements.append(
            Placement(source=source, box=box.offset(origin_x, origin_y), clip=clip)
        )

    if images and len(failures) == len(images):
        raise StrategyExecutionError(
            f"None of the {len(images)} collage image(s) could be decoded", item_failures=failures
        )
    return CollageLayout(
        page=page,
        pages=pages,
        failures=failures,
        background=background,
        columns=columns,
        rows=rows,
        cell_width=cell_width,
        cell_height=cell_height,
    )


__all__ = [
    "SourceImage",
    "decode_image",
    "layout_single_page",
    "Placement",
    "PagePlacement",
    "SequenceLayout",
    "CollageLayout",
    "layout_sequence",
    "layout_collage",
]
