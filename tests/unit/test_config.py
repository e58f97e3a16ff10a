"""Unit tests for environment-driven configuration and logging setup."""

from __future__ import annotations

import json
import logging

import pytest

from textsidecar.extraction.config import MISTRAL_BASE_URL, ExtractionConfig
from textsidecar.logging_config import setup_logging

_ENV = (
    "MISTRAL_API_KEY",
    "TEXTSIDECAR_AUTO_APPLY_OCR",
    "TEXTSIDECAR_OCR_BASE_URL",
    "TEXTSIDECAR_OCR_MODEL",
    "TEXTSIDECAR_OCR_REQUEST_TIMEOUT",
    "TEXTSIDECAR_OCR_TOTAL_TIMEOUT",
    "TEXTSIDECAR_OCR_MAX_BYTES",
    "TEXTSIDECAR_LEGACY_CONVERTER",
    "TEXTSIDECAR_MAX_WORKERS",
    "TEXTSIDECAR_LOG_JSON",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


class TestFromEnv:
    def test_defaults(self):
        cfg = ExtractionConfig.from_env()
        assert cfg.api_key == ""
        assert cfg.auto_apply_ocr is False
        assert cfg.ocr_base_url == MISTRAL_BASE_URL
        assert cfg.ocr_model == "mistral-ocr-latest"
        assert cfg.ocr_request_timeout_s == 120.0
        assert cfg.ocr_total_timeout_s == 180.0
        assert cfg.ocr_max_upload_bytes == 50_000_000
        assert cfg.legacy_converter is None
        assert cfg.max_workers == 3
        cfg.validate()

    def test_overrides_from_env(self, monkeypatch):
        monkeypatch.setenv("MISTRAL_API_KEY", "sk-abc")
        monkeypatch.setenv("TEXTSIDECAR_AUTO_APPLY_OCR", "Yes")
        monkeypatch.setenv("TEXTSIDECAR_OCR_BASE_URL", "https://proxy.local/v1/")
        monkeypatch.setenv("TEXTSIDECAR_OCR_TOTAL_TIMEOUT", "30.5")
        monkeypatch.setenv("TEXTSIDECAR_OCR_MAX_BYTES", "1000")
        monkeypatch.setenv("TEXTSIDECAR_LEGACY_CONVERTER", "/usr/bin/antiword")
        monkeypatch.setenv("TEXTSIDECAR_MAX_WORKERS", "8")
        cfg = ExtractionConfig.from_env()
        assert cfg.api_key == "sk-abc"
        assert cfg.auto_apply_ocr is True
        assert cfg.ocr_base_url == "https://proxy.local/v1"
        assert cfg.ocr_total_timeout_s == 30.5
        assert cfg.ocr_max_upload_bytes == 1000
        assert cfg.legacy_converter == "/usr/bin/antiword"
        assert cfg.max_workers == 8

    @pytest.mark.parametrize("raw", ["0", "false", "no", "off", ""])
    def test_falsey_bools(self, monkeypatch, raw):
        monkeypatch.setenv("TEXTSIDECAR_AUTO_APPLY_OCR", raw)
        assert ExtractionConfig.from_env().auto_apply_ocr is False

    def test_bad_integer_raises(self, monkeypatch):
        monkeypatch.setenv("TEXTSIDECAR_MAX_WORKERS", "many")
        with pytest.raises(ValueError):
            ExtractionConfig.from_env()

    def test_with_overrides_returns_copy(self):
        cfg = ExtractionConfig.from_env()
        other = cfg.with_overrides(max_workers=1)
        assert other.max_workers == 1
        assert cfg.max_workers == 3


class TestValidation:
    def test_ocr_without_key_raises(self, monkeypatch):
        monkeypatch.setenv("TEXTSIDECAR_AUTO_APPLY_OCR", "1")
        monkeypatch.setenv("MISTRAL_API_KEY", "   ")
        with pytest.raises(ValueError, match="MISTRAL_API_KEY"):
            ExtractionConfig.from_env().validate()

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("ocr_request_timeout_s", 0.0),
            ("ocr_total_timeout_s", -1.0),
            ("ocr_max_upload_bytes", 0),
            ("max_workers", 0),
        ],
    )
    def test_out_of_range(self, field, value):
        cfg = ExtractionConfig.from_env().with_overrides(**{field: value})
        with pytest.raises(ValueError):
            cfg.validate()


class TestLogging:
    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        yield
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

    def test_single_handler_installed(self):
        setup_logging(level="debug")
        setup_logging(level="debug")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_json_output(self):
        handler = setup_logging(json_output=True)
        record = logging.LogRecord("textsidecar.test", logging.WARNING, __file__, 7, "cache miss %s", ("a.pdf",), None)
        doc = json.loads(handler.format(record))
        assert doc["message"] == "cache miss a.pdf"
        assert doc["level"] == "warning"
        assert doc["logger"] == "textsidecar.test"
        assert "levelname" not in doc

    def test_json_from_env(self, monkeypatch):
        monkeypatch.setenv("TEXTSIDECAR_LOG_JSON", "true")
        handler = setup_logging()
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "hi", None, None)
        assert json.loads(handler.format(record))["message"] == "hi"
