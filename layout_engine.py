#!/usr/bin/env python3
"""
Layout Engine
Vertical cursor, text flow and a millimetre-based canvas over ReportLab.

All positions handed to this module are in millimetres measured from the
top-left corner of the page, the way the documents are laid out. PdfCanvas
converts them into ReportLab's bottom-up point coordinates.
"""

import io
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import getAscentDescent, stringWidth
from reportlab.pdfgen import canvas

from document_settings import (
    BASE_ROW_HEIGHT,
    BODY_FONT,
    BODY_SIZE,
    BOTTOM_MARGIN,
    LINE_HEIGHT,
    PAGE_HEIGHT,
    TOP_MARGIN,
)

RGB = Tuple[float, float, float]
BLACK: RGB = (0, 0, 0)


@dataclass
class LayoutCursor:
    """
    Current vertical write position on the current page.

    A break happens only when the requested block would cross the bottom
    margin strictly; landing exactly on the margin still fits.
    """
    y: float = TOP_MARGIN
    page_height: float = PAGE_HEIGHT
    top_margin: float = TOP_MARGIN
    bottom_margin: float = BOTTOM_MARGIN
    on_new_page: Optional[Callable[[], None]] = None
    page_breaks: int = 0

    @property
    def limit(self) -> float:
        return self.page_height - self.bottom_margin

    @property
    def remaining(self) -> float:
        return self.limit - self.y

    def request_space(self, needed: float) -> bool:
        """Start a new page if `needed` mm do not fit below the cursor. Returns True on a break."""
        if self.y + needed > self.limit:
            self.new_page()
            return True
        return False

    def new_page(self):
        if self.on_new_page is not None:
            self.on_new_page()
        self.page_breaks += 1
        self.y = self.top_margin

    def advance(self, amount: float):
        self.y += amount


def _split_long_token(token: str, font: str, size: float, max_width_pt: float) -> List[str]:
    """Break a token wider than the column into width-safe chunks."""
    chunks = []
    current = ""
    for char in token:
        if current and stringWidth(current + char, font, size) > max_width_pt:
            chunks.append(current)
            current = char
        else:
            current += char
    if current:
        chunks.append(current)
    return chunks


def wrap_text(text: Optional[str], max_width: float, font: str = BODY_FONT,
              size: float = BODY_SIZE) -> List[str]:
    """
    Wrap text to fit max_width millimetres using the font's real metrics.

    Always returns at least one line. The result depends only on the
    arguments, so repeated calls give the same lines.
    """
    max_width_pt = max_width * mm
    lines = []
    for line in simpleSplit(str(text or ""), font, size, max_width_pt):
        if stringWidth(line, font, size) <= max_width_pt:
            lines.append(line)
            continue
        # simpleSplit leaves a single over-long word on its own line
        pieces: List[str] = []
        for word in line.split(" "):
            if not word:
                continue
            if stringWidth(word, font, size) > max_width_pt:
                pieces.extend(_split_long_token(word, font, size, max_width_pt))
            elif pieces and stringWidth(f"{pieces[-1]} {word}", font, size) <= max_width_pt:
                pieces[-1] = f"{pieces[-1]} {word}"
            else:
                pieces.append(word)
        lines.extend(pieces)
    return lines or [""]


def row_advance(line_count: int, base_row_height: float = BASE_ROW_HEIGHT) -> float:
    """
    Advance still owed after flow_text so a row spans max(base, lines * line height).

    flow_text has already moved the cursor one line height for every line
    after the first.
    """
    row_height = max(base_row_height, line_count * LINE_HEIGHT)
    return row_height - (line_count - 1) * LINE_HEIGHT


class PdfCanvas:
    """
    In-memory ReportLab canvas addressed in top-down millimetres.

    Nothing touches the disk: finish() returns the PDF bytes.
    """

    def __init__(self, title: str = "", author: str = "",
                 footer: Optional[Callable[["PdfCanvas", int], None]] = None):
        self.buffer = io.BytesIO()
        self.canvas = canvas.Canvas(self.buffer, pagesize=A4)
        self.canvas.setTitle(title)
        if author:
            self.canvas.setAuthor(author)
        self.footer = footer
        self.page_number = 1
        self._finished = False

    def new_cursor(self, start_y: float = TOP_MARGIN) -> LayoutCursor:
        """Cursor whose page breaks are carried out on this canvas."""
        return LayoutCursor(y=start_y, on_new_page=self.show_page)

    # Coordinate helpers
    @staticmethod
    def _x(x: float) -> float:
        return x * mm

    @staticmethod
    def _y(y: float) -> float:
        return (PAGE_HEIGHT - y) * mm

    @staticmethod
    def text_width(text: str, font: str = BODY_FONT, size: float = BODY_SIZE) -> float:
        """Rendered width of text in millimetres."""
        return stringWidth(str(text), font, size) / mm

    # Drawing
    def text(self, x: float, y: float, value: str, font: str = BODY_FONT,
             size: float = BODY_SIZE, align: str = "left", color: RGB = BLACK):
        c = self.canvas
        c.setFont(font, size)
        c.setFillColorRGB(*color)
        value = str(value)
        if align == "right":
            c.drawRightString(self._x(x), self._y(y), value)
        elif align == "center":
            c.drawCentredString(self._x(x), self._y(y), value)
        else:
            c.drawString(self._x(x), self._y(y), value)
        c.setFillColorRGB(*BLACK)

    def line(self, x1: float, y1: float, x2: float, y2: float,
             width: float = 0.3, color: RGB = BLACK):
        c = self.canvas
        c.setLineWidth(width * mm)
        c.setStrokeColorRGB(*color)
        c.line(self._x(x1), self._y(y1), self._x(x2), self._y(y2))
        c.setStrokeColorRGB(*BLACK)

    def text_bounds(self, x: float, y: float, value: str, font: str = BODY_FONT,
                    size: float = BODY_SIZE) -> Tuple[float, float, float, float]:
        """Bounding box (x0, y0, x1, y1) in PDF points of text drawn with its baseline at y."""
        ascent, descent = getAscentDescent(font, size)
        x0 = self._x(x)
        baseline = self._y(y)
        return (x0, baseline + descent, x0 + stringWidth(str(value), font, size), baseline + ascent)

    def link(self, url: str, x: float, y: float, value: str, font: str = BODY_FONT,
             size: float = BODY_SIZE):
        """Clickable region covering exactly the visible text drawn at (x, y)."""
        self.canvas.linkURL(url, self.text_bounds(x, y, value, font, size), relative=0, thickness=0)

    def image(self, data: bytes, x: float, y: float, width: float, height: float):
        """Draw image bytes with their top-left corner at (x, y)."""
        reader = ImageReader(io.BytesIO(data))
        self.canvas.drawImage(
            reader, self._x(x), self._y(y + height), width * mm, height * mm,
            preserveAspectRatio=True, mask="auto",
        )

    # Pages
    def show_page(self):
        if self.footer is not None:
            self.footer(self, self.page_number)
        self.canvas.showPage()
        self.page_number += 1

    @property
    def page_count(self) -> int:
        return self.page_number

    def finish(self) -> bytes:
        """Close the last page and return the PDF bytes."""
        if not self._finished:
            if self.footer is not None:
                self.footer(self, self.page_number)
            self.canvas.save()
            self._finished = True
        return self.buffer.getvalue()


def flow_text(pdf: PdfCanvas, cursor: LayoutCursor, text: Optional[str], x: float,
              max_width: float, font: str = BODY_FONT, size: float = BODY_SIZE,
              color: RGB = BLACK) -> int:
    """
    Draw wrapped text starting at the cursor and return the number of lines.

    The first line sits on the current offset; every further line moves the
    cursor one line height, breaking the page first when it would not fit.
    """
    lines = wrap_text(text, max_width, font, size)
    for index, line in enumerate(lines):
        if index > 0 and not cursor.request_space(LINE_HEIGHT):
            cursor.advance(LINE_HEIGHT)
        pdf.text(x, cursor.y, line, font, size, color=color)
    if len(lines) > 1:
        logging.getLogger('LayoutEngine').debug(f"Wrapped text into {len(lines)} lines")
    return len(lines)
