from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from api.dependencies import get_config, get_executor, get_fetcher, get_service
from api.schemas import ErrorResponse, ImagesFromUrlsRequest
from api.utils import ConversionExecutor, run_sync
from pdf_converter.config import AppConfig
from pdf_converter.core import ConversionService
from pdf_converter.detection import detect_document_class
from pdf_converter.fetch import ImageFetcher
from pdf_converter.errors import ConversionError, InvalidGeometry, ValidationError
from pdf_converter.models import (
    RGB,
    CollageOptions,
    ConversionOptions,
    ConversionRequest,
    ConversionResult,
    DocumentClass,
    FitMode,
    Orientation,
    PageSize,
    Strategy,
)
from pdf_converter.utils import file_stem, sanitize_file_name

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/convert", tags=["conversion"])

CLIENT_ERROR_KINDS = frozenset({ValidationError.code, InvalidGeometry.code})


def _error_response(
    status_code: int,
    error_kind: str | None,
    message: str | None,
    strategy: str | None = None,
) -> JSONResponse:
    payload = ErrorResponse(error_kind=error_kind, error=message, strategy=strategy)
    return JSONResponse(status_code=status_code, content=payload.model_dump())


def _result_response(result: ConversionResult) -> Response:
    if not result.succeeded:
        status_code = 400 if result.error_kind in CLIENT_ERROR_KINDS else 500
        return JSONResponse(status_code=status_code, content=result.to_error_payload())
    headers = {
        "Content-Disposition": f'attachment; filename="{result.file_name}"',
        "X-Conversion-Method": result.strategy_used.value if result.strategy_used else "",
        "X-Total-Pages": str(result.page_count),
    }
    return Response(content=result.data, media_type=result.mime_type, headers=headers)


class UploadRejected(ValidationError):
    """An upload failed the type, size or emptiness check before conversion."""

    def __init__(self, message: str, *, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


async def upload_rejected_handler(request: Request, exc: UploadRejected) -> JSONResponse:
    return _error_response(exc.status_code, exc.code, exc.message)


async def _read_upload(upload: UploadFile, config: AppConfig) -> bytes:
    content_type = (upload.content_type or "").split(";", 1)[0].strip().lower()
    if content_type not in config.allowed_mime_types:
        raise UploadRejected(f"Unsupported file type: {content_type or 'unknown'}")
    content = await upload.read()
    _enforce_size_limit(content, config)
    if not content:
        raise UploadRejected(f"{upload.filename or 'upload'} is empty")
    return content


def _enforce_size_limit(payload: bytes, config: AppConfig) -> None:
    max_bytes = config.runtime.max_file_size_mb * 1024 * 1024
    if len(payload) > max_bytes:
        raise UploadRejected(
            f"File exceeds the {config.runtime.max_file_size_mb} MB limit", status_code=413
        )


def _fallback_enabled(value: str | None, config: AppConfig) -> bool:
    return config.defaults.enable_fallback and (value or "").strip().lower() != "false"


def _options(
    config: AppConfig,
    *,
    file_name: str | None,
    default_name: str | None,
    method: str | None,
    enable_fallback: str | None,
    page_size: str | None = None,
    orientation: str | None = None,
    margin: float = 20.0,
    quality: int = 90,
    fit: str | None = None,
    collage: CollageOptions | None = None,
) -> ConversionOptions:
    return ConversionOptions(
        file_name_stem=sanitize_file_name(file_name or default_name),
        strategy=Strategy.parse(method),
        enable_fallback=_fallback_enabled(enable_fallback, config),
        page_size=PageSize.parse(page_size),
        orientation=Orientation.parse(orientation),
        margin_pt=margin,
        fit_mode=FitMode.parse(fit),
        quality_pct=quality,
        collage=collage,
    )


async def _convert_single(
    service: ConversionService,
    config: AppConfig,
    executor: ConversionExecutor,
    upload: UploadFile,
    document_class: DocumentClass | None,
    **option_fields: object,
) -> Response:
    content = await _read_upload(upload, config)
    try:
        if document_class is None:
            document_class = detect_document_class(
                content, filename=upload.filename, mime_type=upload.content_type
            ).document_class
        options = _options(config, default_name=file_stem(upload.filename), **option_fields)  # type: ignore[arg-type]
    except ConversionError as exc:
        return _error_response(400, exc.code, exc.message)
    result = await executor.run(service.convert_document, ConversionRequest(document_class, content, options))
    return _result_response(result)


@router.post("/excel-to-pdf", summary="Convert a spreadsheet to PDF")
async def excel_to_pdf(
    file: UploadFile = File(...),
    file_name: str | None = Form(None, alias="fileName"),
    method: str | None = Form(None),
    method_query: str | None = Query(None, alias="method"),
    enable_fallback: str | None = Form(None, alias="enableFallback"),
    service: ConversionService = Depends(get_service),
    config: AppConfig = Depends(get_config),
    executor: ConversionExecutor = Depends(get_executor),
) -> Response:
    return await _convert_single(
        service,
        config,
        executor,
        file,
        DocumentClass.SPREADSHEET,
        file_name=file_name,
        method=method or method_query,
        enable_fallback=enable_fallback,
    )


@router.post("/word-to-pdf", summary="Convert a Word document to PDF")
async def word_to_pdf(
    file: UploadFile = File(...),
    file_name: str | None = Form(None, alias="fileName"),
    method: str | None = Form(None),
    method_query: str | None = Query(None, alias="method"),
    enable_fallback: str | None = Form(None, alias="enableFallback"),
    service: ConversionService = Depends(get_service),
    config: AppConfig = Depends(get_config),
    executor: ConversionExecutor = Depends(get_executor),
) -> Response:
    return await _convert_single(
        service,
        config,
        executor,
        file,
        DocumentClass.WORD,
        file_name=file_name,
        method=method or method_query,
        enable_fallback=enable_fallback,
    )


@router.post("/file", summary="Detect the document type and convert it to PDF")
async def convert_file(
    file: UploadFile = File(...),
    file_name: str | None = Form(None, alias="fileName"),
    method: str | None = Form(None),
    method_query: str | None = Query(None, alias="method"),
    enable_fallback: str | None = Form(None, alias="enableFallback"),
    service: ConversionService = Depends(get_service),
    config: AppConfig = Depends(get_config),
    executor: ConversionExecutor = Depends(get_executor),
) -> Response:
    return await _convert_single(
        service,
        config,
        executor,
        file,
        None,
        file_name=file_name,
        method=method or method_query,
        enable_fallback=enable_fallback,
    )


@router.post("/image-to-pdf", summary="Place one image on a PDF page")
async def image_to_pdf(
    image: UploadFile = File(...),
    file_name: str | None = Form(None, alias="fileName"),
    method: str | None = Form(None),
    method_query: str | None = Query(None, alias="method"),
    enable_fallback: str | None = Form(None, alias="enableFallback"),
    page_size: str | None = Form(None, alias="pageSize"),
    orientation: str | None = Form(None),
    margin: float = Form(20.0),
    quality: int = Form(90),
    fit: str | None = Form(None),
    service: ConversionService = Depends(get_service),
    config: AppConfig = Depends(get_config),
    executor: ConversionExecutor = Depends(get_executor),
) -> Response:
    return await _convert_single(
        service,
        config,
        executor,
        image,
        DocumentClass.IMAGE,
        file_name=file_name,
        method=method or method_query,
        enable_fallback=enable_fallback,
        page_size=page_size,
        orientation=orientation,
        margin=margin,
        quality=quality,
        fit=fit,
    )


@router.post("/images-to-pdf", summary="Place each image on its own PDF page")
async def images_to_pdf(
    images: List[UploadFile] = File(...),
    file_name: str | None = Form(None, alias="fileName"),
    method: str | None = Form(None),
    method_query: str | None = Query(None, alias="method"),
    enable_fallback: str | None = Form(None, alias="enableFallback"),
    page_size: str | None = Form(None, alias="pageSize"),
    orientation: str | None = Form(None),
    margin: float = Form(20.0),
    quality: int = Form(90),
    fit: str | None = Form(None),
    service: ConversionService = Depends(get_service),
    config: AppConfig = Depends(get_config),
    executor: ConversionExecutor = Depends(get_executor),
) -> Response:
    if len(images) > config.runtime.max_images:
        return _error_response(400, ValidationError.code, f"At most {config.runtime.max_images} images are accepted")
    payloads = [await _read_upload(upload, config) for upload in images]
    try:
        options = _options(
            config,
            file_name=file_name,
            default_name="images",
            method=method or method_query,
            enable_fallback=enable_fallback,
            page_size=page_size,
            orientation=orientation,
            margin=margin,
            quality=quality,
            fit=fit,
        )
    except ConversionError as exc:
        return _error_response(400, exc.code, exc.message)
    request = ConversionRequest(DocumentClass.IMAGE, tuple(payloads), options)
    return _result_response(await executor.run(service.convert_document, request))


@router.post("/images-collage", summary="Arrange images on a grid")
async def images_collage(
    images: List[UploadFile] = File(...),
    file_name: str | None = Form(None, alias="fileName"),
    page_size: str | None = Form(None, alias="pageSize"),
    orientation: str | None = Form(None),
    margin: float = Form(20.0),
    quality: int = Form(90),
    fit: str | None = Form(None),
    columns: int = Form(2),
    rows: int = Form(2),
    spacing: float = Form(10.0),
    background_color: str | None = Form(None, alias="backgroundColor"),
    service: ConversionService = Depends(get_service),
    config: AppConfig = Depends(get_config),
    executor: ConversionExecutor = Depends(get_executor),
) -> Response:
    if len(images) > config.runtime.max_collage_images:
        return _error_response(
            400, ValidationError.code, f"At most {config.runtime.max_collage_images} images are accepted"
        )
    payloads = [await _read_upload(upload, config) for upload in images]
    try:
        options = _options(
            config,
            file_name=file_name,
            default_name="collage",
            method=None,
            enable_fallback="false",
            page_size=page_size,
            orientation=orientation,
            margin=margin,
            quality=quality,
            fit=fit,
            collage=CollageOptions(
                columns=columns,
                rows=rows,
                spacing_pt=spacing,
                background_color=RGB.from_hex(background_color),
            ),
        )
    except ConversionError as exc:
        return _error_response(400, exc.code, exc.message)
    return _result_response(await executor.run(service.create_collage, payloads, options))


@router.post("/images-from-urls", summary="Download images and place each on its own PDF page")
async def images_from_urls(
    body: ImagesFromUrlsRequest,
    service: ConversionService = Depends(get_service),
    config: AppConfig = Depends(get_config),
    executor: ConversionExecutor = Depends(get_executor),
    fetcher: ImageFetcher = Depends(get_fetcher),
) -> Response:
    if len(body.urls) > config.runtime.max_images:
        return _error_response(400, ValidationError.code, f"At most {config.runtime.max_images} images are accepted")
    try:
        options = _options(
            config,
            file_name=body.file_name,
            default_name="images_from_urls",
            method=body.method,
            enable_fallback=None if body.enable_fallback else "false",
            page_size=body.page_size,
            orientation=body.orientation,
            margin=body.margin,
            quality=body.quality,
            fit=body.fit,
        )
        report = await run_sync(fetcher.fetch_all, body.urls)
    except ConversionError as exc:
        return _error_response(400, exc.code, exc.message)
    request = ConversionRequest(DocumentClass.IMAGE, tuple(report.payloads), options)
    return _result_response(await executor.run(service.convert_document, request))


__all__ = ["UploadRejected", "router", "upload_rejected_handler"]
