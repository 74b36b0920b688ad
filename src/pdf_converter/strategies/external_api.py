"""iLovePDF REST backend.

The workflow is ``auth -> start -> upload -> process -> download``: a token
is requested with the project's public key, ``start`` assigns a worker server
and task id, files are uploaded to that server, processed with a tool
(``officepdf`` or ``imagepdf``) and the result downloaded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Any, Sequence

import httpx
from PIL import Image

from ..config import ExternalApiConfig
from ..detection import OLE2_SIGNATURE
from ..errors import ConfigurationError, PartialItemFailure, StrategyExecutionError
from ..layout import decode_image
from ..models import ConversionRequest, DocumentClass, Orientation, PageSize, Strategy
from ..utils import count_pdf_pages, sanitize_file_name, scoped_temp_dir
from .base import BaseStrategy, RenderedDocument

logger = logging.getLogger(__name__)

OFFICE_TOOL = "officepdf"
IMAGE_TOOL = "imagepdf"

_OFFICE_SUFFIX = {
    DocumentClass.SPREADSHEET: (".xlsx", ".xls"),
    DocumentClass.WORD: (".docx", ".doc"),
}

# imagepdf only knows these two sizes; anything else keeps the image size
_IMAGE_PAGE_SIZES = {PageSize.A4: "A4", PageSize.LETTER: "letter"}


@dataclass(slots=True)
class TaskHandle:
    server: str
    task: str
    tool: str


class ILovePDFClient:
    def __init__(self, config: ExternalApiConfig, *, transport: httpx.BaseTransport | None = None) -> None:
        self._config = config
        self._http = httpx.Client(timeout=config.timeout_s, transport=transport)
        self._token: str | None = None

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ILovePDFClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"} if self._token else {}

    def _server_url(self, handle: TaskHandle, path: str) -> str:
        return f"https://{handle.server}/v1/{path}"

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise StrategyExecutionError(f"Unexpected iLovePDF response: {payload!r}")
        return payload

    def authenticate(self) -> str:
        response = self._http.post(
            f"{self._config.base_url}/auth",
            json={"public_key": self._config.public_key},
        )
        token = self._json(response).get("token")
        if not token:
            raise StrategyExecutionError("iLovePDF did not return an auth token")
        self._token = str(token)
        return self._token

    def start(self, tool: str) -> TaskHandle:
        response = self._http.get(f"{self._config.base_url}/start/{tool}", headers=self._headers)
        payload = self._json(response)
        try:
            return TaskHandle(server=str(payload["server"]), task=str(payload["task"]), tool=tool)
        except KeyError as exc:
            raise StrategyExecutionError(f"iLovePDF start response missing {exc}") from exc

    def upload(self, handle: TaskHandle, path: Path) -> dict[str, str]:
        with path.open("rb") as handle_file:
            response = self._http.post(
                self._server_url(handle, "upload"),
                headers=self._headers,
                data={"task": handle.task},
                files={"file": (path.name, handle_file)},
            )
        server_filename = self._json(response).get("server_filename")
        if not server_filename:
            raise StrategyExecutionError(f"iLovePDF rejected upload of {path.name}")
        return {"server_filename": str(server_filename), "filename": path.name}

    def process(self, handle: TaskHandle, files: Sequence[dict[str, str]], **params: Any) -> None:
        body = {"task": handle.task, "tool": handle.tool, "files": list(files), **params}
        self._json(self._http.post(self._server_url(handle, "process"), headers=self._headers, json=body))

    def download(self, handle: TaskHandle) -> bytes:
        response = self._http.get(self._server_url(handle, f"download/{handle.task}"), headers=self._headers)
        response.raise_for_status()
        return response.content

    def run(self, tool: str, paths: Sequence[Path], **params: Any) -> bytes:
        self.authenticate()
        handle = self.start(tool)
        uploaded = [self.upload(handle, path) for path in paths]
        self.process(handle, uploaded, **params)
        return self.download(handle)


def encode_jpeg(data: bytes, index: int, quality: int) -> bytes:
    source = decode_image(data, index)
    image = source.image
    if image.mode != "RGB":
        background = Image.new("RGB", image.size, (255, 255, 255))
        converted = image.convert("RGBA")
        background.paste(converted, mask=converted.getchannel("A"))
        image = background
    buffer = BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


class ExternalApiStrategy(BaseStrategy):
    strategy = Strategy.EXTERNAL_API
    supported = frozenset({DocumentClass.SPREADSHEET, DocumentClass.WORD, DocumentClass.IMAGE})

    def __init__(
        self,
        config: ExternalApiConfig,
        temp_root: Path,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._temp_root = temp_root
        self._transport = transport

    def _convert(self, request: ConversionRequest) -> RenderedDocument:
        if not self._config.has_credentials:
            raise ConfigurationError("iLovePDF credentials are not configured")

        warnings: list[str] = []
        with scoped_temp_dir(self._temp_root, prefix="ilovepdf-") as workdir:
            if request.document_class is DocumentClass.IMAGE:
                tool = IMAGE_TOOL
                paths = self._write_images(request, workdir, warnings)
                params = self._image_params(request, warnings)
            else:
                tool = OFFICE_TOOL
                source = request.buffers[0]
                modern, legacy = _OFFICE_SUFFIX[request.document_class]
                suffix = legacy if source.startswith(OLE2_SIGNATURE) else modern
                # the stem is caller input; keep the file inside workdir
                path = workdir / f"{sanitize_file_name(request.options.file_name_stem)}{suffix}"
                path.write_bytes(source)
                paths = [path]
                params = {}

            logger.info("Sending %d file(s) to iLovePDF %s", len(paths), tool)
            try:
                with ILovePDFClient(self._config, transport=self._transport) as client:
                    data = client.run(tool, paths, **params)
            except httpx.HTTPError as exc:
                raise StrategyExecutionError(f"iLovePDF request failed: {exc}") from exc

        return RenderedDocument(data=data, page_count=count_pdf_pages(data), warnings=warnings)

    def _write_images(
        self, request: ConversionRequest, workdir: Path, warnings: list[str]
    ) -> list[Path]:
        paths: list[Path] = []
        failures: list[PartialItemFailure] = []
        for index, data in enumerate(request.buffers):
            try:
                jpeg = encode_jpeg(data, index, request.options.quality_pct)
            except PartialItemFailure as exc:
                failures.append(exc)
                warnings.append(exc.message)
                continue
            path = workdir / f"image_{index:03d}.jpg"
            path.write_bytes(jpeg)
            paths.append(path)
        if not paths:
            raise StrategyExecutionError("No image could be prepared for upload", item_failures=failures)
        return paths

    def _image_params(self, request: ConversionRequest, warnings: list[str]) -> dict[str, Any]:
        options = request.options
        page_size = _IMAGE_PAGE_SIZES.get(options.page_size)
        if page_size is None:
            warnings.append(f"iLovePDF has no {options.page_size.value} page size; using image size")
            page_size = "fit"
        return {
            "orientation": "landscape" if options.orientation is Orientation.LANDSCAPE else "portrait",
            "margin": int(round(options.margin_pt)),
            "pagesize": page_size,
        }


__all__ = ["OFFICE_TOOL", "IMAGE_TOOL", "TaskHandle", "ILovePDFClient", "encode_jpeg", "ExternalApiStrategy"]
