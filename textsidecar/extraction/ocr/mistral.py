from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx

from textsidecar.extraction.config import MISTRAL_BASE_URL, MISTRAL_OCR_MODEL, OCR_MAX_UPLOAD_BYTES
from textsidecar.extraction.ocr.cancellation import CancellationToken
from textsidecar.extraction.postprocess import process
from textsidecar.extraction.types import PostProcessingOptions

logger = logging.getLogger(__name__)

PDF_EXTS = frozenset({"pdf"})
IMAGE_EXTS = frozenset({"jpg", "jpeg", "png", "tiff", "tif", "bmp", "gif", "heic"})

_IMAGE_MIME = {"jpg": "image/jpeg", "tif": "image/tiff"}

_STATUS_HINTS = {
    401: "invalid API key",
    422: "request rejected as malformed",
    429: "rate limit exceeded",
    520: "OCR service temporarily unavailable",
}

_URL_EXPIRY_HOURS = 24


def document_kind(path: Path) -> str | None:
    """Return the OCR document type tag for a file, or None if OCR can't take it."""
    ext = path.suffix.lower().lstrip(".")
    if ext in PDF_EXTS:
        return "document_url"
    if ext in IMAGE_EXTS:
        return "image_url"
    return None


def upload_mime_type(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in PDF_EXTS:
        return "application/pdf"
    return _IMAGE_MIME.get(ext, f"image/{ext}")


def join_pages(pages: list[Any]) -> str:
    """Concatenate per-page markdown with 1-based page headers, in page order."""
    parts: list[str] = []
    for n, page in enumerate(pages, 1):
        markdown = page.get("markdown") if isinstance(page, dict) else None
        if isinstance(markdown, str):
            parts.append(f"Page {n}:\n{markdown}\n\n")
    return "".join(parts)


def _mask(secret: str) -> str:
    if len(secret) <= 8:
        return "***"
    return f"{secret[:4]}...{secret[-4:]}"


@dataclass
class _OCRJob:
    path: Path
    kind: str
    token: CancellationToken
    file_id: str | None = None
    signed_url: str | None = None
    pages: list[Any] = field(default_factory=list)


class MistralOCRClient:
    """
    Mistral OCR over HTTP, three round-trips per file:
    - upload the bytes (purpose=ocr) -> file id
    - resolve a 24h signed URL for that file id
    - run recognition on the URL -> per-page markdown

    recognize() never raises: every failure, including cancellation, is None.
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = MISTRAL_BASE_URL,
        model: str = MISTRAL_OCR_MODEL,
        request_timeout_s: float = 120.0,
        total_timeout_s: float = 180.0,
        max_upload_bytes: int = OCR_MAX_UPLOAD_BYTES,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key.strip()
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = httpx.Timeout(request_timeout_s)
        self._total_timeout_s = total_timeout_s
        self._max_upload_bytes = max_upload_bytes
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self._timeout)
        self._current_token: CancellationToken | None = None

    async def __aenter__(self) -> MistralOCRClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def cancel(self) -> None:
        """Cancel the most recently started recognize() call."""
        if self._current_token is not None:
            self._current_token.cancel()

    async def text_only(self, file_path: str | Path, *, token: CancellationToken | None = None) -> str | None:
        return await self.recognize(file_path, PostProcessingOptions.text_only(), token=token)

    async def recognize(
        self,
        file_path: str | Path,
        options: PostProcessingOptions | None = None,
        *,
        token: CancellationToken | None = None,
    ) -> str | None:
        # A new call always starts un-cancelled unless the caller hands in its own token
        token = token or CancellationToken()
        self._current_token = token
        path = Path(file_path)

        if not self._api_key:
            logger.warning("Mistral API key is not configured; skipping OCR for %s", path.name)
            return None

        kind = document_kind(path)
        if kind is None:
            logger.warning("Unsupported file type for OCR: %s", path.suffix or path.name)
            return None

        job = _OCRJob(path=path, kind=kind, token=token)
        try:
            async with asyncio.timeout(self._total_timeout_s):
                raw = await self._run(job)
        except TimeoutError:
            logger.warning("OCR timed out after %.0fs for %s", self._total_timeout_s, path.name)
            return None
        except httpx.HTTPError as e:
            logger.warning("OCR network error for %s: %s: %s", path.name, type(e).__name__, e)
            return None
        except OSError as e:
            logger.warning("Cannot read %s for OCR: %s", path, e)
            return None
        except Exception:
            logger.exception("Unexpected OCR failure for %s", path.name)
            return None

        if not raw:
            return None
        text = process(raw, options)
        return text or None

    async def _run(self, job: _OCRJob) -> str | None:
        if self._is_cancelled(job, "before size check"):
            return None

        size = (await asyncio.to_thread(job.path.stat)).st_size
        if size > self._max_upload_bytes:
            logger.warning(
                "File too large for OCR: %s is %d MB (max %d MB)",
                job.path.name,
                size // 1_000_000,
                self._max_upload_bytes // 1_000_000,
            )
            return None
        logger.info("OCR input %s: %d KB", job.path.name, size // 1_000)

        if self._is_cancelled(job, "before upload"):
            return None
        data = await asyncio.to_thread(job.path.read_bytes)

        job.file_id = await self._upload(job, data)
        if job.file_id is None:
            return None

        job.signed_url = await self._resolve_url(job)
        if job.signed_url is None:
            return None

        pages = await self._recognize(job)
        if pages is None:
            return None
        job.pages = pages

        text = join_pages(pages)
        if not text:
            logger.warning("OCR returned no page markdown for %s", job.path.name)
            return None
        logger.info("OCR recognized %d page(s) for %s", len(pages), job.path.name)
        return text

    async def _upload(self, job: _OCRJob, data: bytes) -> str | None:
        logger.info("Uploading %s to Mistral", job.path.name)
        resp = await self._send(
            job,
            "upload",
            "POST",
            f"{self._base_url}/files",
            data={"purpose": "ocr"},
            files={"file": (job.path.name, data, upload_mime_type(job.path))},
        )
        if resp is None:
            return None
        body = self._json_body(resp, "upload")
        file_id = body.get("id") if body else None
        if not isinstance(file_id, str) or not file_id:
            logger.warning("Upload response carried no file id for %s", job.path.name)
            return None
        logger.debug("Uploaded %s as file id %s", job.path.name, file_id)
        return file_id

    async def _resolve_url(self, job: _OCRJob) -> str | None:
        info = await self._send(
            job,
            "file info",
            "GET",
            f"{self._base_url}/files/{job.file_id}",
            headers={"Accept": "application/json"},
        )
        if info is None:
            return None

        resp = await self._send(
            job,
            "signed url",
            "GET",
            f"{self._base_url}/files/{job.file_id}/url",
            params={"expiry": _URL_EXPIRY_HOURS},
            headers={"Accept": "application/json"},
        )
        if resp is None:
            return None
        body = self._json_body(resp, "signed url")
        url = body.get("url") if body else None
        if not isinstance(url, str) or not url:
            logger.warning("Signed URL response carried no url for file id %s", job.file_id)
            return None
        return url

    async def _recognize(self, job: _OCRJob) -> list[Any] | None:
        payload = {
            "model": self._model,
            "document": {"type": job.kind, job.kind: job.signed_url},
            "include_image_base64": False,
        }
        logger.info("Requesting OCR for %s (model=%s, type=%s)", job.path.name, self._model, job.kind)
        resp = await self._send(job, "ocr", "POST", f"{self._base_url}/ocr", json=payload)
        if resp is None:
            return None
        body = self._json_body(resp, "ocr")
        pages = body.get("pages") if body else None
        if not isinstance(pages, list):
            logger.warning("OCR response carried no pages list for %s", job.path.name)
            return None
        return pages

    async def _send(
        self,
        job: _OCRJob,
        stage: str,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response | None:
        """One round-trip bracketed by cancellation checks; None unless HTTP 200."""
        if self._is_cancelled(job, f"before {stage}"):
            return None

        all_headers = {"Authorization": f"Bearer {self._api_key}"}
        if headers:
            all_headers.update(headers)
        logger.debug("%s %s (key %s)", method, url, _mask(self._api_key))
        resp = await self._http.request(method, url, headers=all_headers, timeout=self._timeout, **kwargs)

        if self._is_cancelled(job, f"after {stage}"):
            return None

        logger.debug("%s -> HTTP %d: %s", stage, resp.status_code, resp.text[:200])
        if resp.status_code != 200:
            hint = _STATUS_HINTS.get(resp.status_code, "unexpected status")
            logger.warning(
                "Mistral %s failed (HTTP %d, %s) for %s: %s",
                stage,
                resp.status_code,
                hint,
                job.path.name,
                resp.text[:200],
            )
            return None
        return resp

    @staticmethod
    def _json_body(resp: httpx.Response, stage: str) -> dict[str, Any] | None:
        try:
            body = resp.json()
        except ValueError:
            logger.warning("Mistral %s returned a non-JSON body", stage)
            return None
        if not isinstance(body, dict):
            logger.warning("Mistral %s returned unexpected JSON shape", stage)
            return None
        return body

    @staticmethod
    def _is_cancelled(job: _OCRJob, where: str) -> bool:
        if job.token.cancelled:
            logger.info("OCR for %s cancelled %s", job.path.name, where)
            return True
        return False
