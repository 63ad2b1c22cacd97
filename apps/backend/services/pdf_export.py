"""
LinguaLens - PDF Export
=======================
Render a document's original and translated text to an A4 PDF.
"""

import io
import re
from datetime import datetime
from typing import Any, Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from config import get_settings
from exceptions import PDFExportError
from logging_config import get_logger
from metrics import pdf_exports_total

logger = get_logger(__name__)

MARGIN = 20 * mm
LINE_HEIGHT = 5 * mm
BOTTOM_RESERVE = 40 * mm

BLUE = (59, 130, 246)
GRAY = (107, 114, 128)
DIVIDER = (229, 231, 235)
PANEL = (249, 250, 251)
HEADING = (31, 41, 55)
BODY = (55, 65, 81)
FOOTER = (156, 163, 175)

REGULAR_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
UNICODE_FONT = "DocumentFont"


def export_filename(name: str) -> str:
    """'My Scan.PNG' -> 'my_scan_translation.pdf'."""
    stem = re.sub(r"\.[^/.]+$", "", name or "")
    stem = re.sub(r"[^a-z0-9]", "_", stem, flags=re.IGNORECASE).lower()
    return f"{stem}_translation.pdf"


def _rgb(color: tuple[int, int, int]) -> tuple[float, float, float]:
    return tuple(channel / 255 for channel in color)


class _NumberedCanvas(canvas.Canvas):
    """Canvas that stamps ``Page i of n`` once the total is known."""

    def __init__(self, *args, footer_font: str = REGULAR_FONT, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states: list[dict] = []
        self._footer_font = footer_font

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(total)
            super().showPage()
        super().save()

    def _draw_footer(self, total: int):
        width, _ = self._pagesize
        self.setFont(self._footer_font, 8)
        self.setFillColorRGB(*_rgb(FOOTER))
        self.drawCentredString(width / 2, 10 * mm, f"Page {self._pageNumber} of {total}")


class _PdfWriter:
    """Top-down cursor over a numbered canvas."""

    def __init__(self, buffer: io.BytesIO, body_font: str, bold_font: str):
        self.width, self.height = A4
        self.content_width = self.width - 2 * MARGIN
        self.body_font = body_font
        self.bold_font = bold_font
        self.canvas = _NumberedCanvas(buffer, pagesize=A4, footer_font=body_font)
        self.y = MARGIN

    def _baseline(self) -> float:
        return self.height - self.y

    def new_page(self):
        self.canvas.showPage()
        self.y = MARGIN

    def text(self, value: str, size: int, color: tuple[int, int, int], bold: bool = False):
        self.canvas.setFont(self.bold_font if bold else self.body_font, size)
        self.canvas.setFillColorRGB(*_rgb(color))
        self.canvas.drawString(MARGIN, self._baseline(), value)

    def divider(self):
        self.canvas.setStrokeColorRGB(*_rgb(DIVIDER))
        self.canvas.line(MARGIN, self._baseline(), self.width - MARGIN, self._baseline())

    def paragraph(self, value: str, size: int = 11):
        """Wrapped text on a light panel, continuing onto new pages as needed."""
        lines: list[str] = []
        for raw_line in value.splitlines() or [""]:
            lines.extend(simpleSplit(raw_line, self.body_font, size, self.content_width) or [""])

        for line in lines:
            if self.y + LINE_HEIGHT > self.height - MARGIN:
                self.new_page()
            self.canvas.setFillColorRGB(*_rgb(PANEL))
            self.canvas.rect(
                MARGIN - 2 * mm,
                self._baseline() - 1.5 * mm,
                self.content_width + 4 * mm,
                LINE_HEIGHT,
                stroke=0,
                fill=1,
            )
            self.text(line, size, BODY)
            self.y += LINE_HEIGHT


def _fonts() -> tuple[str, str, bool]:
    """(body font, bold font, unicode-capable)."""
    font_path = get_settings().pdf_font_path
    if not font_path:
        return REGULAR_FONT, BOLD_FONT, False
    if UNICODE_FONT not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(TTFont(UNICODE_FONT, font_path))
    return UNICODE_FONT, UNICODE_FONT, True


def _latin1(value: str) -> str:
    # Standard Type 1 fonts only cover latin-1
    return value.encode("latin-1", "replace").decode("latin-1")


def _format_created(created_at: Optional[datetime]) -> str:
    return (created_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")


def generate_pdf(document: Any) -> bytes:
    """
    Render ``document`` to PDF bytes.

    ``document`` needs ``name``, ``size``, ``created_at``, ``original_text``
    and ``translated_text`` attributes (a ``DocumentModel`` works).

    Raises:
        PDFExportError: "Failed to generate PDF"
    """
    document_id = str(getattr(document, "id", "") or "") or None
    try:
        body_font, bold_font, unicode_ok = _fonts()
        clean = (lambda s: s) if unicode_ok else _latin1

        buffer = io.BytesIO()
        pdf = _PdfWriter(buffer, body_font, bold_font)

        pdf.text("Document Translation", 24, BLUE, bold=True)
        pdf.y += 12 * mm
        pdf.text(clean(document.name or ""), 14, (0, 0, 0))
        pdf.y += 8 * mm

        metadata = [
            f"Created: {_format_created(document.created_at)}",
            f"Document Size: {(document.size or 0) / 1024:.1f}KB",
        ]
        for line in metadata:
            pdf.text(line, 10, GRAY)
            pdf.y += LINE_HEIGHT

        pdf.y = MARGIN + 35 * mm
        pdf.divider()
        pdf.y += 10 * mm

        if document.original_text:
            pdf.text("Original Text", 16, HEADING, bold=True)
            pdf.y += 8 * mm
            pdf.paragraph(clean(document.original_text))
            pdf.y += 15 * mm

        if document.translated_text:
            if pdf.y > pdf.height - MARGIN:
                pdf.new_page()
            pdf.divider()
            pdf.y += 10 * mm

            if pdf.y > pdf.height - BOTTOM_RESERVE:
                pdf.new_page()
            pdf.text("Translated Text", 16, HEADING, bold=True)
            pdf.y += 8 * mm
            pdf.paragraph(clean(document.translated_text))

        pdf.canvas.showPage()
        pdf.canvas.save()
    except Exception as e:
        logger.error("pdf_export_failed", document_id=document_id, error=str(e))
        raise PDFExportError(document_id=document_id, original_error=e) from e

    pdf_exports_total.inc()
    return buffer.getvalue()
