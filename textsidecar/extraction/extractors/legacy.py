from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

import docx  # python-docx

from textsidecar.extraction.errors import DecodeError
from textsidecar.extraction.extractors.base import Extractor
from textsidecar.extraction.types import ExtractionMethod, SourceFile

logger = logging.getLogger(__name__)

# Probed in order when no converter is configured
_KNOWN_CONVERTERS = ("textutil", "antiword", "catdoc")


def converter_command(converter: str, path: Path) -> list[str]:
    """Build the argv that prints the document's plain text on stdout."""
    name = Path(converter).name
    if name == "textutil":
        return [converter, "-convert", "txt", "-encoding", "UTF-8", str(path), "-stdout"]
    if name == "antiword":
        return [converter, "-w", "0", str(path)]
    if name == "catdoc":
        return [converter, "-w", str(path)]
    return [converter, str(path)]


class LegacyDocumentExtractor(Extractor):
    """
    Word-processor documents:
    - .docx in-process via python-docx
    - .doc through an external converter process (stdout = text)
    """

    EXTENSIONS = frozenset({"doc", "docx"})
    METHOD = ExtractionMethod.LEGACY_DOCUMENT

    def __init__(self, *, converter: str | None = None, timeout_s: float = 120.0) -> None:
        self._converter = converter
        self._timeout_s = timeout_s

    def extract(self, source: SourceFile) -> str:
        if source.extension == "docx":
            return self._extract_docx(source)
        return self._extract_with_converter(source)

    def _extract_docx(self, source: SourceFile) -> str:
        try:
            d = docx.Document(str(source.path))
        except Exception as exc:
            raise DecodeError(f"cannot open DOCX {source.name}: {exc}") from exc
        parts: list[str] = []
        for p in d.paragraphs:
            if p.text and p.text.strip():
                parts.append(p.text)
        return "\n".join(parts)

    def _resolve_converter(self) -> str:
        if self._converter:
            return self._converter
        for name in _KNOWN_CONVERTERS:
            found = shutil.which(name)
            if found:
                return found
        raise DecodeError(f"no legacy document converter found on PATH (tried {', '.join(_KNOWN_CONVERTERS)})")

    def _extract_with_converter(self, source: SourceFile) -> str:
        cmd = converter_command(self._resolve_converter(), source.path)
        logger.debug("Running converter: %s", cmd)
        try:
            proc = subprocess.run(cmd, capture_output=True, timeout=self._timeout_s, check=False)
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise DecodeError(f"cannot run {cmd[0]}: {exc}") from exc

        if proc.returncode != 0:
            err = proc.stderr.decode("utf-8", errors="replace").strip() or "unknown converter error"
            raise DecodeError(f"{Path(cmd[0]).name} exited with {proc.returncode}: {err}")

        # Empty output is an empty document, not an error
        if not proc.stdout:
            return ""
        try:
            return proc.stdout.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"converter output for {source.name} is not UTF-8") from exc
