from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path


class ExtractionMethod(str, Enum):
    PLAIN_TEXT = "plain_text"
    PDF_TEXT_LAYER = "pdf_text_layer"
    RICH_TEXT = "rich_text"
    LEGACY_DOCUMENT = "legacy_document"
    REMOTE_OCR = "remote_ocr"
    UNSUPPORTED = "unsupported"
    OCR_DISABLED = "ocr_disabled"


class FailureReason(str, Enum):
    UNSUPPORTED = "unsupported"
    DECODE_FAILED = "decode_failed"
    OCR_DISABLED = "ocr_disabled"
    OCR_FAILED = "ocr_failed"
    EMPTY_TEXT = "empty_text"


class ImageLinkHandling(str, Enum):
    KEEP = "keep"
    STRIP = "strip"
    PLACEHOLDER = "placeholder"


@dataclass(frozen=True)
class SourceFile:
    name: str
    path: Path
    is_directory: bool
    size: int
    modification_time: datetime  # tz-aware UTC; part of the cache key

    @property
    def extension(self) -> str:
        return self.path.suffix.lower().lstrip(".")

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> SourceFile:
        p = Path(path)
        st = p.stat()
        return cls(
            name=p.name,
            path=p,
            is_directory=p.is_dir(),
            size=st.st_size,
            modification_time=datetime.fromtimestamp(st.st_mtime, tz=UTC),
        )


@dataclass(frozen=True)
class ExtractionResult:
    text: str | None
    method: ExtractionMethod
    error: Exception | None = None
    failure: FailureReason | None = None

    @property
    def is_success(self) -> bool:
        return bool(self.text) and self.error is None

    @classmethod
    def ok(cls, text: str, method: ExtractionMethod) -> ExtractionResult:
        # Decoded cleanly but nothing to cache
        if not text:
            return cls(text=text, method=method, failure=FailureReason.EMPTY_TEXT)
        return cls(text=text, method=method)

    @classmethod
    def failed(
        cls,
        method: ExtractionMethod,
        reason: FailureReason,
        error: Exception | None = None,
    ) -> ExtractionResult:
        return cls(text=None, method=method, error=error, failure=reason)


@dataclass(frozen=True)
class CacheRecord:
    extracted_text: str
    extraction_date: datetime
    original_file_modification_date: datetime
    original_file_path: str | None
    extraction_method: str | None

    def is_fresh_for(self, source: SourceFile) -> bool:
        """True when the record was produced from the file's current on-disk state."""
        return self.original_file_modification_date == source.modification_time


@dataclass(frozen=True)
class PostProcessingOptions:
    image_links: ImageLinkHandling = ImageLinkHandling.PLACEHOLDER
    image_placeholder: str = "[image]"
    remove_empty_lines: bool = True
    trim_whitespace: bool = True

    @classmethod
    def text_only(cls) -> PostProcessingOptions:
        return cls(image_links=ImageLinkHandling.STRIP)
