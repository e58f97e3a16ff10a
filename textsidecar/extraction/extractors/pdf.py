from __future__ import annotations

import logging

from pypdf import PdfReader

from textsidecar.extraction.errors import DecodeError
from textsidecar.extraction.extractors.base import Extractor
from textsidecar.extraction.types import ExtractionMethod, SourceFile

logger = logging.getLogger(__name__)


class PdfExtractor(Extractor):
    """Reads the embedded text layer. An empty string means a scanned/image-only PDF."""

    EXTENSIONS = frozenset({"pdf"})
    METHOD = ExtractionMethod.PDF_TEXT_LAYER

    def extract(self, source: SourceFile) -> str:
        try:
            r = PdfReader(source.path)
            parts: list[str] = []
            for p in r.pages:
                parts.append(p.extract_text() or "")
        except Exception as exc:
            raise DecodeError(f"cannot open PDF {source.name}: {exc}") from exc

        text = "\n".join(parts).strip()
        logger.debug("PDF text layer for %s: %d pages, %d chars", source.name, len(parts), len(text))
        return text
