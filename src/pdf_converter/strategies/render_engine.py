from __future__ import annotations

import logging

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from ..config import BrowserConfig
from ..errors import StrategyExecutionError, ValidationError
from ..models import ConversionOptions, ConversionRequest, DocumentClass, Orientation, Strategy
from ..tables import workbook_to_html
from ..utils import count_pdf_pages
from ..wordprocessing import document_to_html
from .base import BaseStrategy, RenderedDocument

logger = logging.getLogger(__name__)


def _margin(options: ConversionOptions) -> dict[str, str]:
    # Playwright has no point unit
    inches = f"{options.margin_pt / 72:.4f}in"
    return {"top": inches, "right": inches, "bottom": inches, "left": inches}


class RenderEngineStrategy(BaseStrategy):
    """Render spreadsheets and Word documents to HTML and print them with Chromium."""

    strategy = Strategy.RENDER_ENGINE
    supported = frozenset({DocumentClass.SPREADSHEET, DocumentClass.WORD})

    def __init__(self, config: BrowserConfig) -> None:
        self._config = config

    def build_html(self, request: ConversionRequest) -> str:
        data = request.buffers[0]
        if request.document_class is DocumentClass.SPREADSHEET:
            return workbook_to_html(data, request.options)
        if request.document_class is DocumentClass.WORD:
            return document_to_html(data, request.options)
        raise ValidationError(f"Render engine cannot convert {request.document_class.value} input")

    def print_pdf(self, html: str, options: ConversionOptions) -> bytes:
        try:
            with sync_playwright() as playwright:
                browser = playwright.chromium.launch(
                    headless=self._config.headless,
                    args=list(self._config.args),
                    timeout=self._config.timeout_ms,
                )
                try:
                    page = browser.new_page()
                    page.set_default_timeout(self._config.timeout_ms)
                    page.set_content(html, wait_until="networkidle")
                    return page.pdf(
                        format=options.page_size.value,
                        landscape=options.orientation is Orientation.LANDSCAPE,
                        print_background=True,
                        prefer_css_page_size=True,
                        margin=_margin(options),
                    )
                finally:
                    browser.close()
        except PlaywrightError as exc:
            raise StrategyExecutionError(f"Browser rendering failed: {exc}") from exc

    def _convert(self, request: ConversionRequest) -> RenderedDocument:
        html = self.build_html(request)
        logger.info(
            "Printing %s (%d bytes of HTML) with headless Chromium",
            request.document_class.value,
            len(html),
        )
        data = self.print_pdf(html, request.options)
        return RenderedDocument(data=data, page_count=count_pdf_pages(data))


__all__ = ["RenderEngineStrategy"]
