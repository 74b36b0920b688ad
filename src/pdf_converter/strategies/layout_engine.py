from __future__ import annotations

import logging
from io import BytesIO

from PIL import Image
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas as pdf_canvas

from ..geometry import page_dimensions
from ..layout import CollageLayout, Placement, SequenceLayout, layout_collage, layout_sequence
from ..models import CollageOptions, ConversionRequest, DocumentClass, FitMode, Strategy
from .base import BaseStrategy, RenderedDocument

logger = logging.getLogger(__name__)

PDF_CREATOR = "pdf-converter"


def prepare_image(image: Image.Image, width_pt: float, height_pt: float, dpi: int) -> Image.Image:
    """Flatten onto white and downscale to at most ``dpi`` for the drawn size."""

    if image.mode in ("RGBA", "LA", "P"):
        rgba = image.convert("RGBA")
        flattened = Image.new("RGB", rgba.size, (255, 255, 255))
        flattened.paste(rgba, mask=rgba.getchannel("A"))
        image = flattened
    elif image.mode != "RGB":
        image = image.convert("RGB")

    max_px = (max(1, round(width_pt / 72 * dpi)), max(1, round(height_pt / 72 * dpi)))
    if image.width > max_px[0] or image.height > max_px[1]:
        image = image.copy()
        image.thumbnail(max_px, Image.Resampling.LANCZOS)
    return image


class LayoutEngineStrategy(BaseStrategy):
    """Place images on pages directly with reportlab."""

    strategy = Strategy.LAYOUT_ENGINE
    supported = frozenset({DocumentClass.IMAGE})

    def __init__(self, *, image_dpi: int = 300) -> None:
        self._image_dpi = image_dpi

    def plan(self, request: ConversionRequest) -> SequenceLayout:
        options = request.options
        if options.collage is None:
            return layout_sequence(request.buffers, options)
        collage: CollageOptions = options.collage
        return layout_collage(
            request.buffers,
            collage.columns,
            collage.rows,
            collage.spacing_pt,
            page_dimensions(options.page_size, options.orientation),
            options.margin_pt,
            options.fit_mode,
            background=collage.background_color,
        )

    def _draw(self, canvas: pdf_canvas.Canvas, placement: Placement, request: ConversionRequest) -> None:
        box = placement.box
        image = prepare_image(placement.source.image, box.width, box.height, self._image_dpi)
        buffer = BytesIO()
        image.save(buffer, format="JPEG", quality=request.options.quality_pct)
        buffer.seek(0)
        clip = request.options.fit_mode is FitMode.COVER
        if clip:
            canvas.saveState()
            path = canvas.beginPath()
            bound = placement.clip
            path.rect(bound.x, bound.y, bound.width, bound.height)
            canvas.clipPath(path, stroke=0, fill=0)
        canvas.drawImage(ImageReader(buffer), box.x, box.y, width=box.width, height=box.height)
        if clip:
            canvas.restoreState()

    def render(self, layout: SequenceLayout, request: ConversionRequest) -> bytes:
        output = BytesIO()
        page = layout.page
        canvas = pdf_canvas.Canvas(output, pagesize=(page.width_pt, page.height_pt))
        canvas.setTitle(request.options.file_name_stem)
        canvas.setAuthor(PDF_CREATOR)
        canvas.setCreator(PDF_CREATOR)
        canvas.setSubject("Collage" if isinstance(layout, CollageLayout) else "Images")
        for page_placement in layout.pages:
            if layout.background is not None:
                canvas.setFillColorRGB(*layout.background.as_fractions())
                canvas.rect(0, 0, page.width_pt, page.height_pt, stroke=0, fill=1)
            for placement in page_placement.placements:
                self._draw(canvas, placement, request)
            canvas.showPage()
        canvas.save()
        return output.getvalue()

    def _convert(self, request: ConversionRequest) -> RenderedDocument:
        layout = self.plan(request)
        logger.info(
            "Laying out %d image(s) on %d page(s)",
            len(request.buffers) - len(layout.failures),
            layout.page_count,
        )
        data = self.render(layout, request)
        return RenderedDocument(data=data, page_count=layout.page_count, warnings=layout.warnings)


__all__ = ["PDF_CREATOR", "prepare_image", "LayoutEngineStrategy"]
