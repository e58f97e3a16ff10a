"""Documents synthesized in memory for extractor and dispatcher tests."""

from __future__ import annotations

import io

import pytest

DOCX_PARAGRAPHS = ("Dear reader,", "", "   ", "The quarterly figures are attached.", "Regards")


@pytest.fixture
def sample_docx_bytes() -> bytes:
    """A letter with two blank paragraphs between the greeting and the body."""
    docx = pytest.importorskip("docx")
    document = docx.Document()
    for text in DOCX_PARAGRAPHS:
        document.add_paragraph(text)
    out = io.BytesIO()
    document.save(out)
    return out.getvalue()


def _fpdf():
    return pytest.importorskip("fpdf").FPDF()


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """Single page with a real text layer."""
    pdf = _fpdf()
    pdf.add_page()
    pdf.set_font("Courier", size=11)
    for line in ("Invoice 2026-0042", "Total due: 118.00 EUR"):
        pdf.cell(text=line)
        pdf.ln()
    return bytes(pdf.output())


@pytest.fixture
def multi_page_pdf_bytes() -> bytes:
    pdf = _fpdf()
    pdf.set_font("Courier", size=11)
    for n in (1, 2, 3):
        pdf.add_page()
        pdf.cell(text=f"Section {n} body")
    return bytes(pdf.output())


@pytest.fixture
def empty_pdf_bytes() -> bytes:
    """Image-only stand-in for a scan: vector shapes, no text layer."""
    pdf = _fpdf()
    pdf.add_page()
    pdf.rect(x=20, y=20, w=120, h=60, style="F")
    return bytes(pdf.output())
