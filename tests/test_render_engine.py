from io import BytesIO

import pytest
from openpyxl import Workbook
from playwright.sync_api import Error as PlaywrightError
from reportlab.pdfgen import canvas

from pdf_converter.config import BrowserConfig
from pdf_converter.models import ConversionOptions, ConversionRequest, DocumentClass, Orientation, Strategy
from pdf_converter.strategies import render_engine


def _xlsx() -> bytes:
    workbook = Workbook()
    workbook.active["A1"] = "Total"
    workbook.active["B1"] = 42
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _pdf(pages: int) -> bytes:
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer)
    for _ in range(pages):
        pdf.showPage()
    pdf.save()
    return buffer.getvalue()


class FakePage:
    def __init__(self, result: bytes | Exception) -> None:
        self.result = result
        self.pdf_kwargs: dict | None = None
        self.content: str | None = None

    def set_default_timeout(self, timeout: float) -> None:
        pass

    def set_content(self, html: str, wait_until: str | None = None) -> None:
        self.content = html

    def pdf(self, **kwargs):
        self.pdf_kwargs = kwargs
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeBrowser:
    def __init__(self, page: FakePage) -> None:
        self.page = page
        self.closed = False

    def new_page(self) -> FakePage:
        return self.page

    def close(self) -> None:
        self.closed = True


class FakePlaywright:
    def __init__(self, browser: FakeBrowser) -> None:
        self.browser = browser
        self.launch_kwargs: dict | None = None
        self.chromium = self

    def launch(self, **kwargs) -> FakeBrowser:
        self.launch_kwargs = kwargs
        return self.browser

    def __enter__(self) -> "FakePlaywright":
        return self

    def __exit__(self, *exc_info) -> None:
        return None


@pytest.fixture
def fake_chromium(monkeypatch):
    def _install(result: bytes | Exception) -> FakePlaywright:
        playwright = FakePlaywright(FakeBrowser(FakePage(result)))
        monkeypatch.setattr(render_engine, "sync_playwright", lambda: playwright)
        return playwright

    return _install


def test_browser_closed_when_printing_fails(fake_chromium) -> None:
    playwright = fake_chromium(PlaywrightError("Target page crashed"))
    strategy = render_engine.RenderEngineStrategy(BrowserConfig())

    result = strategy.execute(ConversionRequest(DocumentClass.SPREADSHEET, _xlsx()))

    assert result.error_kind == "StrategyExecutionError"
    assert "Target page crashed" in result.message
    assert playwright.browser.closed


def test_printed_pdf_is_counted_and_browser_closed(fake_chromium) -> None:
    playwright = fake_chromium(_pdf(2))
    config = BrowserConfig(headless=True, timeout_ms=5000)
    options = ConversionOptions(file_name_stem="totals", orientation=Orientation.LANDSCAPE, margin_pt=36)

    result = render_engine.RenderEngineStrategy(config).execute(
        ConversionRequest(DocumentClass.SPREADSHEET, _xlsx(), options)
    )

    assert result.succeeded
    assert result.strategy_used is Strategy.RENDER_ENGINE
    assert result.page_count == 2
    assert result.file_name == "totals.pdf"
    assert playwright.browser.closed
    assert playwright.launch_kwargs["headless"] is True
    assert "Total" in playwright.browser.page.content
    pdf_kwargs = playwright.browser.page.pdf_kwargs
    assert pdf_kwargs["format"] == "A4"
    assert pdf_kwargs["landscape"] is True
    assert pdf_kwargs["margin"]["top"] == "0.5000in"
