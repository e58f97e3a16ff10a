from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from textsidecar.extraction.types import ExtractionMethod, SourceFile


class Extractor(ABC):
    """In-process decoder for one family of file extensions.

    extract() returns the decoded text (possibly empty) or raises DecodeError.
    """

    EXTENSIONS: ClassVar[frozenset[str]]
    METHOD: ClassVar[ExtractionMethod]

    def can_handle(self, source: SourceFile) -> bool:
        return source.extension in self.EXTENSIONS

    @abstractmethod
    def extract(self, source: SourceFile) -> str: ...
