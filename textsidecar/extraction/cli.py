from __future__ import annotations

import argparse

from textsidecar.extraction.types import ImageLinkHandling


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="textsidecar",
        description="Extract text from documents and cache it in hidden sidecar files",
    )

    p.add_argument("paths", nargs="+", help="Files or directories (directories are scanned one level deep)")
    p.add_argument("--force", action="store_true", help="Re-extract even when a fresh sidecar exists")

    ocr = p.add_mutually_exclusive_group()
    ocr.add_argument(
        "--ocr",
        dest="ocr",
        action="store_true",
        default=None,
        help="Apply remote OCR to images and PDFs without a text layer",
    )
    ocr.add_argument("--no-ocr", dest="ocr", action="store_false", help="Never call the OCR service")

    p.add_argument(
        "--image-links",
        choices=[h.value for h in ImageLinkHandling],
        default=ImageLinkHandling.PLACEHOLDER.value,
        help="What to do with markdown image references in OCR output",
    )
    p.add_argument("--placeholder", default="[image]", help="Replacement text for --image-links placeholder")
    p.add_argument(
        "--concurrency",
        type=int,
        default=0,
        help="Override TEXTSIDECAR_MAX_WORKERS",
    )
    p.add_argument("--print", dest="print_text", action="store_true", help="Write extracted text to stdout")
    p.add_argument("--log-level", default="INFO", help="Python logging level (INFO, DEBUG, ...)")
    return p
