import json
from io import BytesIO
from pathlib import Path

import httpx
from reportlab.pdfgen import canvas

from pdf_converter.config import ExternalApiConfig
from pdf_converter.models import ConversionOptions, ConversionRequest, DocumentClass, PageSize, Strategy
from pdf_converter.strategies.external_api import ExternalApiStrategy


def _pdf(pages: int = 1) -> bytes:
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer)
    for _ in range(pages):
        pdf.drawString(72, 72, "converted")
        pdf.showPage()
    pdf.save()
    return buffer.getvalue()


class FakeILovePDF:
    def __init__(self, temp_root: Path, pages: int = 2):
        self.temp_root = temp_root
        self.pages = pages
        self.uploads: list[str] = []
        self.process_body: dict | None = None
        self.temp_entries_during_upload: list[Path] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/auth"):
            assert json.loads(request.content)["public_key"] == "pk"
            return httpx.Response(200, json={"token": "jwt"})
        assert request.headers["Authorization"] == "Bearer jwt"
        if "/start/" in path:
            return httpx.Response(200, json={"server": "api9.example.test", "task": "t-1"})
        if path.endswith("/upload"):
            assert request.url.host == "api9.example.test"
            self.temp_entries_during_upload = list(self.temp_root.iterdir())
            name = f"srv-{len(self.uploads)}"
            self.uploads.append(name)
            return httpx.Response(200, json={"server_filename": name})
        if path.endswith("/process"):
            self.process_body = json.loads(request.content)
            return httpx.Response(200, json={"status": "TaskSuccess"})
        if path.endswith("/download/t-1"):
            return httpx.Response(200, content=_pdf(self.pages))
        return httpx.Response(404)


def _config() -> ExternalApiConfig:
    return ExternalApiConfig(public_key="pk", secret_key="sk", base_url="https://api.example.test/v1")


def test_missing_credentials_fail_before_temp_files(tmp_path: Path) -> None:
    temp_root = tmp_path / "tmp"
    strategy = ExternalApiStrategy(ExternalApiConfig(), temp_root)
    result = strategy.execute(ConversionRequest(DocumentClass.SPREADSHEET, b"data"))
    assert not result.succeeded
    assert result.error_kind == "ConfigurationError"
    assert not temp_root.exists()


def test_office_workflow_and_cleanup(tmp_path: Path) -> None:
    temp_root = tmp_path / "tmp"
    fake = FakeILovePDF(temp_root, pages=2)
    strategy = ExternalApiStrategy(_config(), temp_root, transport=httpx.MockTransport(fake))
    request = ConversionRequest(
        DocumentClass.WORD, b"PK-docx", ConversionOptions(file_name_stem="letter")
    )
    result = strategy.execute(request)
    assert result.succeeded
    assert result.strategy_used is Strategy.EXTERNAL_API
    assert result.page_count == 2
    assert result.file_name == "letter.pdf"
    assert fake.process_body["tool"] == "officepdf"
    assert fake.process_body["files"] == [{"server_filename": "srv-0", "filename": "letter.docx"}]
    assert len(fake.temp_entries_during_upload) == 1
    assert list(temp_root.iterdir()) == []


def test_image_workflow_skips_undecodable(tmp_path: Path, make_image) -> None:
    temp_root = tmp_path / "tmp"
    fake = FakeILovePDF(temp_root, pages=1)
    strategy = ExternalApiStrategy(_config(), temp_root, transport=httpx.MockTransport(fake))
    request = ConversionRequest(
        DocumentClass.IMAGE,
        (make_image(), b"broken"),
        ConversionOptions(page_size=PageSize.LETTER, margin_pt=12),
    )
    result = strategy.execute(request)
    assert result.succeeded
    assert fake.uploads == ["srv-0"]
    assert fake.process_body["tool"] == "imagepdf"
    assert fake.process_body["pagesize"] == "letter"
    assert fake.process_body["margin"] == 12
    assert result.warnings[0].startswith("item 1:")


def test_http_failure_is_strategy_error_and_cleans_up(tmp_path: Path) -> None:
    temp_root = tmp_path / "tmp"

    def failing(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/auth"):
            return httpx.Response(200, json={"token": "jwt"})
        return httpx.Response(503)

    strategy = ExternalApiStrategy(_config(), temp_root, transport=httpx.MockTransport(failing))
    result = strategy.execute(ConversionRequest(DocumentClass.SPREADSHEET, b"PK-xlsx"))
    assert result.error_kind == "StrategyExecutionError"
    assert list(temp_root.iterdir()) == []


def test_path_like_stem_stays_inside_scoped_dir(tmp_path: Path) -> None:
    temp_root = tmp_path / "tmp"
    written: list[Path] = []

    def failing(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/auth"):
            return httpx.Response(200, json={"token": "jwt"})
        if "/start/" in request.url.path:
            return httpx.Response(200, json={"server": "api9.example.test", "task": "t-1"})
        written.extend(path for path in tmp_path.rglob("*") if path.is_file())
        return httpx.Response(500)

    strategy = ExternalApiStrategy(_config(), temp_root, transport=httpx.MockTransport(failing))
    request = ConversionRequest(
        DocumentClass.SPREADSHEET, b"PK-xlsx", ConversionOptions(file_name_stem="../../leaked")
    )
    result = strategy.execute(request)

    assert result.error_kind == "StrategyExecutionError"
    assert [path.name for path in written] == ["leaked.xlsx"]
    assert all(temp_root in path.parents for path in written)
    assert not (tmp_path / "leaked.xlsx").exists()
    assert list(temp_root.iterdir()) == []
