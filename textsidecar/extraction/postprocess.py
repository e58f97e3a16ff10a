from __future__ import annotations

import re

from textsidecar.extraction.types import ImageLinkHandling, PostProcessingOptions

# Markdown image reference: ![alt](target), non-greedy on both groups
_IMAGE_LINK = re.compile(r"!\[(.*?)\]\((.*?)\)")
# Newline, any whitespace-only lines, newline
_BLANK_RUN = re.compile(r"\n\s*\n+")


def process(text: str, options: PostProcessingOptions | None = None) -> str:
    """Clean raw OCR markdown: image references, then blank lines, then trimming."""
    if not text:
        return text
    opts = options or PostProcessingOptions()

    if opts.image_links is ImageLinkHandling.STRIP:
        text = _IMAGE_LINK.sub("", text)
    elif opts.image_links is ImageLinkHandling.PLACEHOLDER:
        placeholder = opts.image_placeholder
        text = _IMAGE_LINK.sub(lambda _m: placeholder, text)

    if opts.remove_empty_lines:
        text = _BLANK_RUN.sub("\n\n", text)

    if opts.trim_whitespace:
        text = text.strip()

    return text
