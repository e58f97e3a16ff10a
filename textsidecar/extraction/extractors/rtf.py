from __future__ import annotations

from striprtf.striprtf import rtf_to_text

from textsidecar.extraction.errors import DecodeError
from textsidecar.extraction.extractors.base import Extractor
from textsidecar.extraction.types import ExtractionMethod, SourceFile


class RtfExtractor(Extractor):
    EXTENSIONS = frozenset({"rtf"})
    METHOD = ExtractionMethod.RICH_TEXT

    def extract(self, source: SourceFile) -> str:
        try:
            raw = source.path.read_bytes().decode("latin-1")
        except OSError as exc:
            raise DecodeError(f"cannot read {source.name}: {exc}") from exc

        # striprtf is lenient and happily "decodes" arbitrary text
        if not raw.lstrip().startswith("{\\rtf"):
            raise DecodeError(f"{source.name} is not an RTF document")
        try:
            return rtf_to_text(raw)
        except Exception as exc:
            raise DecodeError(f"cannot convert RTF {source.name}: {exc}") from exc
