from __future__ import annotations

import asyncio
import logging

from textsidecar.extraction.errors import DecodeError, OCRFailedError, UnsupportedFormatError
from textsidecar.extraction.extractors.base import Extractor
from textsidecar.extraction.extractors.legacy import LegacyDocumentExtractor
from textsidecar.extraction.extractors.pdf import PdfExtractor
from textsidecar.extraction.extractors.rtf import RtfExtractor
from textsidecar.extraction.extractors.text import TextExtractor
from textsidecar.extraction.ocr.cancellation import CancellationToken
from textsidecar.extraction.ocr.mistral import IMAGE_EXTS, MistralOCRClient
from textsidecar.extraction.types import (
    ExtractionMethod,
    ExtractionResult,
    FailureReason,
    PostProcessingOptions,
    SourceFile,
)

logger = logging.getLogger(__name__)


class FormatDispatcher:
    """Routes a file to a local decoder or to remote OCR by extension.

    extract() is total: every outcome, including unknown extensions and
    decoder crashes, comes back as an ExtractionResult.
    """

    def __init__(
        self,
        *,
        ocr_client: MistralOCRClient | None,
        auto_apply_ocr: bool,
        ocr_options: PostProcessingOptions | None = None,
        text: TextExtractor | None = None,
        pdf: PdfExtractor | None = None,
        rtf: RtfExtractor | None = None,
        legacy: LegacyDocumentExtractor | None = None,
    ) -> None:
        self._ocr = ocr_client
        self._auto_ocr = auto_apply_ocr
        self._ocr_options = ocr_options
        self._text = text or TextExtractor()
        self._pdf = pdf or PdfExtractor()
        self._rtf = rtf or RtfExtractor()
        self._legacy = legacy or LegacyDocumentExtractor()

    @property
    def ocr_enabled(self) -> bool:
        return self._auto_ocr

    async def extract(self, source: SourceFile, *, token: CancellationToken | None = None) -> ExtractionResult:
        ext = source.extension
        logger.info("Extracting text from %s (type: %s)", source.name, ext or "none")

        if source.is_directory:
            return ExtractionResult.failed(
                ExtractionMethod.UNSUPPORTED,
                FailureReason.UNSUPPORTED,
                UnsupportedFormatError(f"{source.name} is a directory"),
            )

        if self._text.can_handle(source):
            return await self._decode(self._text, source)

        if self._pdf.can_handle(source):
            return await self._extract_pdf(source, token)

        if self._rtf.can_handle(source):
            return await self._decode(self._rtf, source)

        if self._legacy.can_handle(source):
            return await self._decode(self._legacy, source)

        if ext in IMAGE_EXTS:
            if not self._auto_ocr:
                logger.warning("OCR disabled; not recognizing image %s", source.name)
                return self._ocr_disabled()
            return await self._run_ocr(source, token)

        return ExtractionResult.failed(
            ExtractionMethod.UNSUPPORTED,
            FailureReason.UNSUPPORTED,
            UnsupportedFormatError(f"file type '{ext or source.name}' is not supported"),
        )

    async def _decode(self, extractor: Extractor, source: SourceFile) -> ExtractionResult:
        try:
            text = await asyncio.to_thread(extractor.extract, source)
        except DecodeError as e:
            logger.warning("%s failed for %s: %s", extractor.METHOD.value, source.name, e)
            return ExtractionResult.failed(extractor.METHOD, FailureReason.DECODE_FAILED, e)
        except Exception as e:
            logger.exception("%s crashed on %s", type(extractor).__name__, source.name)
            return ExtractionResult.failed(extractor.METHOD, FailureReason.DECODE_FAILED, e)
        return ExtractionResult.ok(text, extractor.METHOD)

    async def _extract_pdf(self, source: SourceFile, token: CancellationToken | None) -> ExtractionResult:
        res = await self._decode(self._pdf, source)
        if res.error is not None or res.text:
            return res

        if not self._auto_ocr:
            logger.warning("PDF %s has no text layer and OCR is disabled", source.name)
            return self._ocr_disabled()

        logger.info("PDF %s has no text layer, applying OCR", source.name)
        return await self._run_ocr(source, token)

    async def _run_ocr(self, source: SourceFile, token: CancellationToken | None) -> ExtractionResult:
        if self._ocr is None:
            return ExtractionResult.failed(
                ExtractionMethod.REMOTE_OCR,
                FailureReason.OCR_FAILED,
                OCRFailedError("OCR is enabled but no OCR client is configured"),
            )
        text = await self._ocr.recognize(source.path, self._ocr_options, token=token)
        if text is None:
            logger.error("OCR produced no text for %s", source.name)
            return ExtractionResult.failed(
                ExtractionMethod.REMOTE_OCR,
                FailureReason.OCR_FAILED,
                OCRFailedError(f"OCR failed for {source.name}"),
            )
        logger.info("OCR succeeded for %s", source.name)
        return ExtractionResult.ok(text, ExtractionMethod.REMOTE_OCR)

    @staticmethod
    def _ocr_disabled() -> ExtractionResult:
        # Soft failure: the operator opted out, nothing went wrong
        return ExtractionResult.failed(ExtractionMethod.OCR_DISABLED, FailureReason.OCR_DISABLED)
