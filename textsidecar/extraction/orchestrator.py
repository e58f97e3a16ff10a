from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

import httpx

from textsidecar.extraction.cache import SidecarCacheStore
from textsidecar.extraction.config import ExtractionConfig
from textsidecar.extraction.dispatcher import FormatDispatcher
from textsidecar.extraction.extractors.legacy import LegacyDocumentExtractor
from textsidecar.extraction.ocr.cancellation import CancellationToken
from textsidecar.extraction.ocr.mistral import MistralOCRClient
from textsidecar.extraction.types import (
    ExtractionMethod,
    ExtractionResult,
    FailureReason,
    PostProcessingOptions,
    SourceFile,
)

logger = logging.getLogger(__name__)

CacheObserver = Callable[[SourceFile, Path], Awaitable[None] | None]


class ExtractionOrchestrator:
    def __init__(
        self,
        *,
        dispatcher: FormatDispatcher,
        cache: SidecarCacheStore,
        observers: list[CacheObserver] | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._cache = cache
        self._observers: list[CacheObserver] = list(observers or [])

    @property
    def cache(self) -> SidecarCacheStore:
        return self._cache

    def add_observer(self, observer: CacheObserver) -> None:
        self._observers.append(observer)

    async def extract_and_cache(
        self,
        source: SourceFile,
        *,
        token: CancellationToken | None = None,
    ) -> tuple[ExtractionResult, Path | None]:
        result = await self._dispatcher.extract(source, token=token)
        if not result.is_success:
            logger.info(
                "No text extracted from %s (%s); cache not written",
                source.name,
                (result.failure or FailureReason.EMPTY_TEXT).value,
            )
            return result, None

        assert result.text is not None
        location = await asyncio.to_thread(self._cache.save, result.text, source, result.method)
        if location is not None:
            await self._notify(source, location)
        return result, location

    async def extract_or_load(
        self,
        source: SourceFile,
        *,
        force: bool = False,
        token: CancellationToken | None = None,
    ) -> tuple[ExtractionResult, Path | None, bool]:
        """Serve a fresh sidecar when one exists, otherwise extract and cache.

        Returns (result, sidecar location, served_from_cache).
        """
        if not force:
            record = await asyncio.to_thread(self._cache.load_fresh, source)
            if record is not None and record.extracted_text:
                logger.info("Cache hit for %s", source.name)
                method = _method_from_record(record.extraction_method)
                return ExtractionResult.ok(record.extracted_text, method), self._cache.sidecar_path(source), True

        result, location = await self.extract_and_cache(source, token=token)
        return result, location, False

    async def _notify(self, source: SourceFile, location: Path) -> None:
        for observer in self._observers:
            try:
                out = observer(source, location)
                if inspect.isawaitable(out):
                    await out
            except Exception:
                logger.exception("Cache observer failed for %s", source.name)


def _method_from_record(value: str | None) -> ExtractionMethod:
    try:
        return ExtractionMethod(value)
    except ValueError:
        # Sidecars written by older tools carry free-form method names
        logger.debug("Unknown cached extraction method %r", value)
        return ExtractionMethod.PLAIN_TEXT


def build_orchestrator(
    cfg: ExtractionConfig,
    *,
    ocr_options: PostProcessingOptions | None = None,
    http_client: httpx.AsyncClient | None = None,
    observers: list[CacheObserver] | None = None,
) -> tuple[ExtractionOrchestrator, MistralOCRClient | None]:
    """Wire dispatcher, OCR client and cache from config.

    The OCR client is returned so the caller can close it; it is None when
    auto-OCR is off.
    """
    ocr: MistralOCRClient | None = None
    if cfg.auto_apply_ocr:
        ocr = MistralOCRClient(
            api_key=cfg.api_key,
            base_url=cfg.ocr_base_url,
            model=cfg.ocr_model,
            request_timeout_s=cfg.ocr_request_timeout_s,
            total_timeout_s=cfg.ocr_total_timeout_s,
            max_upload_bytes=cfg.ocr_max_upload_bytes,
            http_client=http_client,
        )
    dispatcher = FormatDispatcher(
        ocr_client=ocr,
        auto_apply_ocr=cfg.auto_apply_ocr,
        ocr_options=ocr_options,
        legacy=LegacyDocumentExtractor(converter=cfg.legacy_converter),
    )
    orchestrator = ExtractionOrchestrator(dispatcher=dispatcher, cache=SidecarCacheStore(), observers=observers)
    return orchestrator, ocr
