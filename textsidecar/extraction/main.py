from __future__ import annotations

import asyncio
import logging
import signal
import sys
from pathlib import Path

from textsidecar.extraction.cli import build_parser
from textsidecar.extraction.config import ExtractionConfig
from textsidecar.extraction.ocr.cancellation import CancellationToken
from textsidecar.extraction.orchestrator import ExtractionOrchestrator, build_orchestrator
from textsidecar.extraction.types import FailureReason, ImageLinkHandling, PostProcessingOptions, SourceFile
from textsidecar.logging_config import setup_logging

logger = logging.getLogger("textsidecar.extraction")


def collect_sources(paths: list[str]) -> list[SourceFile]:
    """Expand CLI paths into files; directories contribute their visible files."""
    out: list[SourceFile] = []
    for raw in paths:
        p = Path(raw)
        if not p.exists():
            logger.warning("No such file or directory: %s", p)
            continue
        if p.is_dir():
            for child in sorted(p.iterdir()):
                if child.name.startswith(".") or not child.is_file():
                    continue
                out.append(SourceFile.from_path(child))
        else:
            out.append(SourceFile.from_path(p))
    return out


async def _run_all(
    orchestrator: ExtractionOrchestrator,
    sources: list[SourceFile],
    *,
    concurrency: int,
    force: bool,
    print_text: bool,
) -> dict[str, int]:
    sem = asyncio.Semaphore(concurrency)
    tokens: set[CancellationToken] = set()
    totals = {"total": len(sources), "extracted": 0, "cached": 0, "failed": 0}

    def cancel_all() -> None:
        logger.warning("Interrupted; cancelling %d in-flight job(s)", len(tokens))
        for t in tokens:
            t.cancel()

    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel_all)
        except (NotImplementedError, RuntimeError):
            continue
        installed.append(sig)

    async def worker(src: SourceFile) -> None:
        async with sem:
            token = CancellationToken()
            tokens.add(token)
            try:
                result, location, from_cache = await orchestrator.extract_or_load(src, force=force, token=token)
            finally:
                tokens.discard(token)

        if from_cache:
            totals["cached"] += 1
        elif result.is_success:
            totals["extracted"] += 1
        else:
            totals["failed"] += 1
            reason = result.failure or FailureReason.EMPTY_TEXT
            logger.warning("FAILED %s [%s]: %s", src.path, reason.value, result.error or "no text")

        if result.is_success:
            logger.info("OK %s via %s -> %s", src.path, result.method.value, location or "(not cached)")
            if print_text:
                sys.stdout.write(f"==> {src.path} <==\n{result.text}\n\n")

    try:
        await asyncio.gather(*[worker(s) for s in sources])
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
    return totals


async def _amain(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level.upper())

    cfg = ExtractionConfig.from_env()
    # CLI overrides
    if args.ocr is not None:
        cfg = cfg.with_overrides(auto_apply_ocr=bool(args.ocr))
    if args.concurrency and args.concurrency > 0:
        cfg = cfg.with_overrides(max_workers=args.concurrency)
    cfg.validate()

    options = PostProcessingOptions(
        image_links=ImageLinkHandling(args.image_links),
        image_placeholder=args.placeholder,
    )

    sources = collect_sources(list(args.paths))
    if not sources:
        logger.warning("Nothing to extract. Exiting.")
        return 0

    orchestrator, ocr = build_orchestrator(cfg, ocr_options=options)
    try:
        totals = await _run_all(
            orchestrator,
            sources,
            concurrency=cfg.max_workers,
            force=bool(args.force),
            print_text=bool(args.print_text),
        )
    finally:
        if ocr is not None:
            await ocr.aclose()

    logger.info("DONE totals=%s", totals)
    return 0 if totals["failed"] == 0 else 2


def main(argv: list[str] | None = None) -> None:
    raise SystemExit(asyncio.run(_amain(argv)))


if __name__ == "__main__":
    main()
