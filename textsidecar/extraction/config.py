from __future__ import annotations

import os
from dataclasses import dataclass, replace

MISTRAL_BASE_URL = "https://api.mistral.ai/v1"
MISTRAL_OCR_MODEL = "mistral-ocr-latest"
OCR_MAX_UPLOAD_BYTES = 50_000_000


def _get_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "t", "yes", "y", "on")


def _get_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return default
    return int(v)


def _get_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None:
        return default
    return float(v)


@dataclass(frozen=True)
class ExtractionConfig:
    # OCR / Mistral
    api_key: str
    auto_apply_ocr: bool
    ocr_base_url: str
    ocr_model: str
    ocr_request_timeout_s: float
    ocr_total_timeout_s: float
    ocr_max_upload_bytes: int

    # Legacy .doc converter executable; None = first of textutil/antiword/catdoc on PATH
    legacy_converter: str | None

    # Concurrency
    max_workers: int

    @classmethod
    def from_env(cls) -> ExtractionConfig:
        return cls(
            api_key=os.getenv("MISTRAL_API_KEY", ""),
            auto_apply_ocr=_get_bool("TEXTSIDECAR_AUTO_APPLY_OCR", False),
            ocr_base_url=os.getenv("TEXTSIDECAR_OCR_BASE_URL", MISTRAL_BASE_URL).rstrip("/"),
            ocr_model=os.getenv("TEXTSIDECAR_OCR_MODEL", MISTRAL_OCR_MODEL),
            ocr_request_timeout_s=_get_float("TEXTSIDECAR_OCR_REQUEST_TIMEOUT", 120.0),
            ocr_total_timeout_s=_get_float("TEXTSIDECAR_OCR_TOTAL_TIMEOUT", 180.0),
            ocr_max_upload_bytes=_get_int("TEXTSIDECAR_OCR_MAX_BYTES", OCR_MAX_UPLOAD_BYTES),
            legacy_converter=os.getenv("TEXTSIDECAR_LEGACY_CONVERTER") or None,
            max_workers=_get_int("TEXTSIDECAR_MAX_WORKERS", 3),
        )

    def with_overrides(self, **changes: object) -> ExtractionConfig:
        return replace(self, **changes)  # type: ignore[arg-type]

    def validate(self) -> None:
        if self.auto_apply_ocr and not self.api_key.strip():
            raise ValueError("TEXTSIDECAR_AUTO_APPLY_OCR is on but MISTRAL_API_KEY is empty")
        if self.ocr_request_timeout_s <= 0 or self.ocr_total_timeout_s <= 0:
            raise ValueError("OCR timeouts must be > 0")
        if self.ocr_max_upload_bytes < 1:
            raise ValueError("TEXTSIDECAR_OCR_MAX_BYTES must be >= 1")
        if self.max_workers < 1:
            raise ValueError("TEXTSIDECAR_MAX_WORKERS must be >= 1")
