"""Hidden JSON sidecar cache for extracted text.

For ``/docs/report.pdf`` the record lives at ``/docs/.report.pdf.json``.
Records are keyed to the source file's modification time; a record whose
stored time differs from the file's current one is stale.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from textsidecar.extraction.types import CacheRecord, ExtractionMethod, SourceFile

logger = logging.getLogger(__name__)

SIDECAR_SUFFIX = ".json"


def _current_umask() -> int:
    # os.umask can only be read by setting it
    mask = os.umask(0)
    os.umask(mask)
    return mask


_SIDECAR_MODE = 0o666 & ~_current_umask()


def sidecar_name(source_name: str) -> str:
    return f".{source_name}{SIDECAR_SUFFIX}"


def encode_record(record: CacheRecord) -> str:
    return json.dumps(
        {
            "extractedText": record.extracted_text,
            "extractionDate": record.extraction_date.isoformat(),
            "originalFileModificationDate": record.original_file_modification_date.isoformat(),
            "originalFilePath": record.original_file_path,
            "extractionMethod": record.extraction_method,
        },
        ensure_ascii=False,
        indent=2,
    )


def decode_record(raw: str) -> CacheRecord:
    """Parse a sidecar document. Raises ValueError/KeyError/TypeError on bad input."""
    obj: Any = json.loads(raw)
    if not isinstance(obj, dict):
        raise ValueError("sidecar is not a JSON object")
    text = obj["extractedText"]
    if not isinstance(text, str):
        raise TypeError("extractedText must be a string")
    return CacheRecord(
        extracted_text=text,
        extraction_date=datetime.fromisoformat(obj["extractionDate"]),
        original_file_modification_date=datetime.fromisoformat(obj["originalFileModificationDate"]),
        original_file_path=obj.get("originalFilePath"),
        extraction_method=obj.get("extractionMethod"),
    )


class SidecarCacheStore:
    def sidecar_path(self, source: SourceFile) -> Path:
        return source.path.parent / sidecar_name(source.name)

    def has_sidecar(self, source: SourceFile) -> bool:
        return not source.is_directory and self.sidecar_path(source).is_file()

    def save(self, text: str, source: SourceFile, method: ExtractionMethod | str) -> Path | None:
        record = CacheRecord(
            extracted_text=text,
            extraction_date=datetime.now(UTC),
            original_file_modification_date=source.modification_time,
            original_file_path=str(source.path),
            extraction_method=method.value if isinstance(method, ExtractionMethod) else method,
        )
        target = self.sidecar_path(source)
        try:
            self._write_atomic(target, encode_record(record))
        except OSError as e:
            logger.error("Failed to save cache for %s: %s", source.name, e)
            return None
        logger.info("Cache saved to %s", target)
        return target

    def load(self, source: SourceFile) -> CacheRecord | None:
        """Return the stored record, stale or not; None if absent or unreadable."""
        if source.is_directory:
            return None
        target = self.sidecar_path(source)
        try:
            raw = target.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read cache for %s: %s", source.name, e)
            return None
        try:
            return decode_record(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Corrupt cache file %s: %s", target, e)
            return None

    def load_fresh(self, source: SourceFile) -> CacheRecord | None:
        record = self.load(source)
        if record is None:
            return None
        if not record.is_fresh_for(source):
            logger.debug(
                "Stale cache for %s (cached mtime %s, current %s)",
                source.name,
                record.original_file_modification_date.isoformat(),
                source.modification_time.isoformat(),
            )
            return None
        return record

    def delete(self, source: SourceFile) -> bool:
        try:
            self.sidecar_path(source).unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Cannot delete cache for %s: %s", source.name, e)
            return False
        return True

    @staticmethod
    def _write_atomic(target: Path, content: str) -> None:
        fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=f"{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            # mkstemp creates 0600; sidecars get the same mode as a plain open()
            os.chmod(tmp, _SIDECAR_MODE)
            os.replace(tmp, target)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
