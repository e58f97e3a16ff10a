from __future__ import annotations

from textsidecar.extraction.errors import DecodeError
from textsidecar.extraction.extractors.base import Extractor
from textsidecar.extraction.types import ExtractionMethod, SourceFile


class TextExtractor(Extractor):
    EXTENSIONS = frozenset({"txt", "md", "swift", "py", "js", "html", "css", "json"})
    METHOD = ExtractionMethod.PLAIN_TEXT

    def extract(self, source: SourceFile) -> str:
        try:
            data = source.path.read_bytes()
        except OSError as exc:
            raise DecodeError(f"cannot read {source.name}: {exc}") from exc
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"{source.name} is not valid UTF-8: {exc}") from exc
