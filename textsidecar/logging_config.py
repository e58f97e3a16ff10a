"""Logging setup for the textsidecar CLI.

Plain text on a terminal; one JSON object per line (python-json-logger)
when TEXTSIDECAR_LOG_JSON is set, for log shippers.
"""

from __future__ import annotations

import logging
import os

from pythonjsonlogger.json import JsonFormatter

_TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s  %(message)s"
_JSON_FIELDS = "%(asctime)s %(message)s %(name)s %(funcName)s %(lineno)d"


class SidecarJsonFormatter(JsonFormatter):
    """Emits the level under ``level`` instead of ``levelname``."""

    def add_fields(
        self,
        log_record: dict[str, object],
        record: logging.LogRecord,
        message_dict: dict[str, object],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.pop("levelname", None)
        log_record["level"] = record.levelname.lower()


def _json_requested() -> bool:
    return os.getenv("TEXTSIDECAR_LOG_JSON", "").strip().lower() in {"1", "true", "yes", "on"}


def setup_logging(*, level: str = "INFO", json_output: bool | None = None) -> logging.Handler:
    """Route all records through one stderr handler; returns that handler."""
    use_json = _json_requested() if json_output is None else json_output

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for existing in list(root.handlers):
        root.removeHandler(existing)

    handler = logging.StreamHandler()
    if use_json:
        formatter: logging.Formatter = SidecarJsonFormatter(
            fmt=_JSON_FIELDS,
            rename_fields={"asctime": "timestamp", "name": "logger"},
        )
    else:
        formatter = logging.Formatter(_TEXT_FORMAT, datefmt="%H:%M:%S")
    handler.setFormatter(formatter)
    root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(root.level, logging.WARNING))
    return handler
