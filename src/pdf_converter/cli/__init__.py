from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

import typer
import uvicorn
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..cleanup import TempSweeper
from ..config import AppConfig, dump_config
from ..core import ConversionService
from ..detection import DetectionError, detect_document_class
from ..errors import ValidationError
from ..models import (
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
from ..settings import ENV_PREFIX, get_settings, load_app_config
from ..utils import atomic_write_bytes, file_stem, sanitize_file_name

console = Console()

app = typer.Typer(help="Convert spreadsheets, Word documents and images to PDF")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def _load_config(path: Path | None) -> AppConfig:
    settings = get_settings()
    if path is not None:
        settings = replace(settings, config_path=path)
    return load_app_config(settings)


def _build_options(
    cfg: AppConfig,
    *,
    name: str | None,
    method: str | None,
    no_fallback: bool,
    page_size: str,
    orientation: str,
    margin: float,
    quality: int,
    fit: str,
    collage: CollageOptions | None = None,
) -> ConversionOptions:
    try:
        return ConversionOptions(
            file_name_stem=sanitize_file_name(name),
            strategy=Strategy.parse(method),
            enable_fallback=cfg.defaults.enable_fallback and not no_fallback,
            page_size=PageSize.parse(page_size),
            orientation=Orientation.parse(orientation),
            margin_pt=margin,
            fit_mode=FitMode.parse(fit),
            quality_pct=quality,
            collage=collage,
        )
    except ValidationError as exc:
        raise typer.BadParameter(exc.message) from exc


def _report(result: ConversionResult, output: Path) -> None:
    if not result.succeeded:
        console.print(f"[red]Conversion failed[/red]: {result.error_kind} - {result.message}")
        for warning in result.warnings:
            console.print(f"  [yellow]warning[/yellow]: {warning}")
        raise typer.Exit(1)
    atomic_write_bytes(output, result.data or b"")
    table = Table(title="Conversion")
    table.add_column("Output")
    table.add_column("Strategy")
    table.add_column("Attempts")
    table.add_column("Pages", justify="right")
    table.add_row(
        str(output),
        result.strategy_used.value if result.strategy_used else "-",
        " -> ".join(strategy.value for strategy in result.attempts) or "-",
        str(result.page_count),
    )
    console.print(table)
    for warning in result.warnings:
        console.print(f"[yellow]warning[/yellow]: {warning}")


def _output_path(output: Path | None, first: Path, stem: str) -> Path:
    if output is not None:
        return output
    return first.with_name(f"{stem}.pdf")


@app.command()
def convert(
    files: list[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Input file(s)"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output PDF path"),
    name: str | None = typer.Option(None, "--name", help="Base name of the generated PDF"),
    method: str | None = typer.Option(None, "--method", help="render_engine, external_api or layout_engine"),
    no_fallback: bool = typer.Option(False, "--no-fallback", help="Do not retry with the alternate strategy"),
    page_size: str = typer.Option("A4", "--page-size"),
    orientation: str = typer.Option("portrait", "--orientation"),
    margin: float = typer.Option(20.0, "--margin", min=0, help="Margin in points"),
    quality: int = typer.Option(90, "--quality", min=1, max=100, help="JPEG quality for images"),
    fit: str = typer.Option("contain", "--fit", help="contain, cover or fill"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    cfg = _load_config(config)
    payloads = [path.read_bytes() for path in files]
    try:
        detections = [
            detect_document_class(data, filename=path.name) for data, path in zip(payloads, files)
        ]
    except DetectionError as exc:
        console.print(f"[red]Unsupported input[/red]: {exc.message}")
        raise typer.Exit(1) from exc
    classes = {detection.document_class for detection in detections}
    if len(files) > 1 and classes != {DocumentClass.IMAGE}:
        raise typer.BadParameter("Only images can be combined into one PDF")

    stem = sanitize_file_name(name or file_stem(files[0].name))
    options = _build_options(
        cfg,
        name=stem,
        method=method,
        no_fallback=no_fallback,
        page_size=page_size,
        orientation=orientation,
        margin=margin,
        quality=quality,
        fit=fit,
    )
    document_class = detections[0].document_class
    payload: bytes | tuple[bytes, ...] = tuple(payloads) if document_class is DocumentClass.IMAGE else payloads[0]
    service = ConversionService(cfg)
    result = service.convert_document(ConversionRequest(document_class, payload, options))
    _report(result, _output_path(output, files[0], stem))


@app.command()
def collage(
    files: list[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Images in placement order"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output PDF path"),
    name: str | None = typer.Option(None, "--name", help="Base name of the generated PDF"),
    columns: int = typer.Option(2, "--columns", min=1),
    rows: int = typer.Option(2, "--rows", min=1),
    spacing: float = typer.Option(10.0, "--spacing", min=0, help="Gap between cells in points"),
    background: str = typer.Option("#ffffff", "--background", help="Page colour as #RRGGBB"),
    page_size: str = typer.Option("A4", "--page-size"),
    orientation: str = typer.Option("portrait", "--orientation"),
    margin: float = typer.Option(20.0, "--margin", min=0, help="Margin in points"),
    quality: int = typer.Option(90, "--quality", min=1, max=100),
    fit: str = typer.Option("contain", "--fit", help="contain, cover or fill"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    cfg = _load_config(config)
    stem = sanitize_file_name(name or "collage")
    options = _build_options(
        cfg,
        name=stem,
        method=None,
        no_fallback=True,
        page_size=page_size,
        orientation=orientation,
        margin=margin,
        quality=quality,
        fit=fit,
        collage=CollageOptions(
            columns=columns,
            rows=rows,
            spacing_pt=spacing,
            background_color=RGB.from_hex(background),
        ),
    )
    service = ConversionService(cfg)
    result = service.create_collage([path.read_bytes() for path in files], options)
    _report(result, _output_path(output, files[0], stem))


@app.command()
def sweep(
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
    retention: int | None = typer.Option(None, "--retention", min=0, help="Override retention in seconds"),
) -> None:
    """Delete stale entries from the temp directory once."""

    cfg = _load_config(config)
    sweeper = TempSweeper(
        cfg.runtime.temp_dir,
        retention_s=cfg.runtime.cleanup.retention_s if retention is None else retention,
        interval_s=cfg.runtime.cleanup.interval_s,
    )
    report = sweeper.sweep_once()
    for error in report.errors:
        console.print(f"[yellow]warning[/yellow]: {error}")
    console.print(f"Removed {len(report.removed)} entries from {cfg.runtime.temp_dir}.")


@app.command("config")
def show_config(config: Path | None = typer.Option(None, "--config", help="Path to config.toml")) -> None:
    """Print the effective configuration with secrets masked."""

    console.print_json(dump_config(_load_config(config)))


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    cfg = _load_config(config)
    if config is not None:
        # the app factory reads the same settings
        os.environ[f"{ENV_PREFIX}CONFIG_PATH"] = str(config)
        get_settings.cache_clear()
    uvicorn.run(
        "api.app:create_app",
        factory=True,
        host=host or cfg.api.host,
        port=port or cfg.api.port,
    )


if __name__ == "__main__":
    app()
