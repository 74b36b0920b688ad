import json
from pathlib import Path

import pytest

from pdf_converter.config import AppConfig, dump_config, load_config
from pdf_converter.errors import ValidationError
from pdf_converter.models import RGB, WHITE, ConversionOptions, DocumentClass, FitMode, Strategy
from pdf_converter.settings import Settings, apply_settings, load_app_config


def test_load_config_reads_sections(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        """
formats = ["image/png"]

[runtime]
temp_dir = "/var/tmp/conv"
max_images = 5

[runtime.cleanup]
retention_s = 60

[defaults]
spreadsheet_strategy = "ilovepdf"
enable_fallback = false

[external_api]
public_key = "project_public_123"
secret_key = "secret_key_456"
""",
        encoding="utf-8",
    )
    config = load_config(config_path)
    assert config.runtime.temp_dir == Path("/var/tmp/conv")
    assert config.runtime.max_images == 5
    assert config.runtime.cleanup.retention_s == 60
    assert config.runtime.cleanup.interval_s == 300
    assert config.defaults.strategy_for(DocumentClass.SPREADSHEET) is Strategy.EXTERNAL_API
    assert config.defaults.strategy_for(DocumentClass.IMAGE) is Strategy.LAYOUT_ENGINE
    assert config.defaults.enable_fallback is False
    assert config.allowed_mime_types == ("image/png",)
    assert config.external_api.has_credentials


def test_missing_config_file_gives_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "absent.toml")
    assert config.api.port == 3004
    assert config.runtime.max_file_size_mb == 10


def test_dump_config_masks_secrets() -> None:
    config = AppConfig()
    config.external_api.public_key = "project_public_123"
    config.external_api.secret_key = "secret_key_456"
    payload = json.loads(dump_config(config))
    assert payload["external_api"]["public_key"] == "proj****"
    assert "secret_key_456" not in dump_config(config)


def test_settings_override_config(tmp_path: Path) -> None:
    settings = Settings(
        config_path=tmp_path / "absent.toml",
        temp_dir=tmp_path / "scratch",
        enable_fallback=False,
        default_strategy=Strategy.EXTERNAL_API,
        ilovepdf_public_key="pk",
        ilovepdf_secret_key="sk",
    )
    config = load_app_config(settings)
    assert config.runtime.temp_dir == tmp_path / "scratch"
    assert config.defaults.enable_fallback is False
    assert config.defaults.word_strategy is Strategy.EXTERNAL_API
    assert config.defaults.image_strategy is Strategy.LAYOUT_ENGINE
    assert config.external_api.has_credentials


def test_layout_default_strategy_does_not_leak_to_documents() -> None:
    config = apply_settings(AppConfig(), Settings(default_strategy=Strategy.LAYOUT_ENGINE))
    assert config.defaults.spreadsheet_strategy is Strategy.RENDER_ENGINE


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("puppeteer", Strategy.RENDER_ENGINE),
        ("ilovepdf", Strategy.EXTERNAL_API),
        ("pdf-lib", Strategy.LAYOUT_ENGINE),
        ("layout_engine", Strategy.LAYOUT_ENGINE),
        ("", None),
        (None, None),
    ],
)
def test_strategy_parse_aliases(raw, expected) -> None:
    assert Strategy.parse(raw) is expected


def test_strategy_parse_unknown() -> None:
    with pytest.raises(ValidationError):
        Strategy.parse("word-com")


def test_rgb_from_hex() -> None:
    assert RGB.from_hex("#336699") == RGB(0x33, 0x66, 0x99)
    assert RGB.from_hex("not-a-colour") == WHITE
    assert RGB.from_hex(None) == WHITE


def test_options_validation() -> None:
    with pytest.raises(ValidationError):
        ConversionOptions(quality_pct=0).validate()
    with pytest.raises(ValidationError):
        ConversionOptions(margin_pt=-1).validate()
    with pytest.raises(ValidationError):
        FitMode.parse("stretch")
