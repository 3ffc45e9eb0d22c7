# services/api/core/letterhead.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from fpdf import FPDF
from PIL import Image

from core.errors import CatastrophicRenderError
from core.filename import format_letter_date
from models.page import LETTER_SIZE_PT, PageDescriptor, PageOrigin, fit_within
from models.review import ReviewRecord

logger = logging.getLogger(__name__)

ASSOCIATION_NAME = "Sanctuary Homeowners Association"
COMMITTEE_NAME = "Architectural Review Committee"
GREETING = "Dear Property Owner,"
CLOSING_SENTENCE = "We look forward to another beautiful addition to the neighborhood."
ATTACHMENTS_NOTE = "Attachments included on following pages."

MARGIN_MM = 25.4                 # 1 inch
HEADER_BAR_H_MM = 35.0
LOGO_MAX_W_MM = 60.0
LOGO_MAX_H_MM = 30.0
BODY_LINE_MM = 6.0
FIRST_BASELINE_MM = 5.0          # baseline offset of the first line on a continuation page

BRAND_GREEN = (44, 85, 48)
HEADER_GREY = (245, 245, 245)

# Core fonts only cover Latin-1
_TRANSLITERATIONS = {
    "‘": "'", "’": "'", "‚": "'", "‛": "'",
    "“": '"', "”": '"', "„": '"',
    "–": "-", "—": "-", "−": "-",
    "…": "...", " ": " ", "•": "*", "\t": "    ",
}


@dataclass(frozen=True)
class RenderedLetter:
    pdf_bytes: bytes
    pages: Tuple[PageDescriptor, ...]

    @property
    def page_count(self) -> int:
        return len(self.pages)


# ---------- Public API -------------------------------------------------------

def render_letterhead(
    record: ReviewRecord,
    *,
    brand_mark_path: Path,
    has_attachments: bool = False,
) -> RenderedLetter:
    """
    Lay out the approval letter (fpdf2) and return its PDF bytes.

    The first page carries the header bar with the brand mark; continuation
    pages keep the same margins and start straight with the overflowing text.

    Raises:
        CatastrophicRenderError: brand mark missing/unreadable, or fpdf2 failed.
    """
    brand_mark_path = Path(brand_mark_path)
    if not brand_mark_path.is_file():
        raise CatastrophicRenderError(f"Brand mark asset not found: {brand_mark_path}")
    if record.generated_at is None:
        raise CatastrophicRenderError("Review record has no generation timestamp")

    try:
        letter = _LetterBuilder(created_at=record.generated_at)
        letter.draw_header(brand_mark_path)
        letter.draw_body(record, has_attachments=has_attachments)
        pdf_bytes = letter.build()
    except CatastrophicRenderError:
        raise
    except Exception as e:
        logger.exception(f"Letterhead rendering failed: {e}")
        raise CatastrophicRenderError(f"Letterhead rendering failed: {e}") from e

    width_pt, height_pt = LETTER_SIZE_PT
    pages = tuple(
        PageDescriptor(
            origin=PageOrigin.LETTER,
            width_pt=width_pt,
            height_pt=height_pt,
            source_page_index=i,
        )
        for i in range(letter.page_count)
    )
    logger.info(f"Rendered letter for lot {record.lot_number}: {len(pages)} page(s)")
    return RenderedLetter(pdf_bytes=pdf_bytes, pages=pages)


def to_latin1(text: str) -> str:
    out = "".join(_TRANSLITERATIONS.get(ch, ch) for ch in text)
    return out.encode("latin-1", errors="replace").decode("latin-1")


# ---------- Internals --------------------------------------------------------

def _brand_mark_aspect(path: Path) -> Optional[float]:
    """width / height of a raster brand mark; None for vector files."""
    if path.suffix.lower() == ".svg":
        return None
    with Image.open(path) as img:
        w, h = img.size
    if not w or not h:
        raise CatastrophicRenderError(f"Brand mark has no pixels: {path}")
    return w / h


class _LetterBuilder:
    """
    Vertical-flow letter:
      - US Letter portrait, margins 1 inch on every side
      - Header bar + brand mark on the first page only
      - Text is wrapped to the content width and flows onto new pages
    """

    def __init__(self, *, created_at: datetime):
        self._pdf = FPDF(orientation="P", unit="mm", format="letter")
        self._pdf.set_auto_page_break(auto=False, margin=MARGIN_MM)
        self._pdf.set_margins(MARGIN_MM, MARGIN_MM, MARGIN_MM)
        self._pdf.set_author(ASSOCIATION_NAME)
        self._pdf.set_title("Architectural Approval Letter")
        self._pdf.set_creator(COMMITTEE_NAME)
        self._pdf.set_creation_date(created_at)
        self._pdf.add_page()

        self.created_at = created_at
        self.page_w = self._pdf.w
        self.page_h = self._pdf.h
        self.margin_l = self._pdf.l_margin
        self.margin_r = self._pdf.r_margin
        self.content_w = self.page_w - self.margin_l - self.margin_r
        self.cursor_y = self._pdf.t_margin

    @property
    def page_count(self) -> int:
        return self._pdf.page_no()

    # -- page flow --

    def _new_page(self):
        self._pdf.add_page()
        self.cursor_y = self._pdf.t_margin + FIRST_BASELINE_MM

    def _ensure_space(self):
        """Start a new page if the next baseline would sit in the bottom margin."""
        if self.cursor_y > self.page_h - self._pdf.b_margin:
            self._new_page()

    def _set_style(self, size: float, style: str = "", color=(0, 0, 0)):
        self._pdf.set_font("Helvetica", style, size)
        self._pdf.set_text_color(*color)

    def line(self, text: str, *, advance: float):
        self._ensure_space()
        self._pdf.text(self.margin_l, self.cursor_y, to_latin1(text))
        self.cursor_y += advance

    def paragraph(self, text: str, *, line_h: float = BODY_LINE_MM, gap_after: float = 0.0):
        for row in self._wrap(to_latin1(text)):
            self.line(row, advance=line_h)
        self.cursor_y += gap_after

    def _wrap(self, text: str) -> List[str]:
        """
        Split text into rows that fit the content width (current font).
        fpdf2 does the line breaking; words wider than a row are cut by character.
        """
        rows = self._pdf.multi_cell(
            self.content_w,
            BODY_LINE_MM,
            "\n".join(text.splitlines()),
            align="L",
            dry_run=True,
            output="LINES",
        )
        return rows or [""]

    # -- content --

    def draw_header(self, brand_mark_path: Path):
        self._pdf.set_fill_color(*HEADER_GREY)
        self._pdf.rect(0, 0, self.page_w, HEADER_BAR_H_MM, style="F")

        aspect = _brand_mark_aspect(brand_mark_path)
        if aspect is None:
            logo_h = LOGO_MAX_H_MM
            self._pdf.image(
                str(brand_mark_path),
                x=self.margin_l,
                y=(HEADER_BAR_H_MM - logo_h) / 2,
                h=logo_h,
            )
        else:
            logo_w, logo_h = fit_within(aspect, 1.0, LOGO_MAX_W_MM, LOGO_MAX_H_MM)
            self._pdf.image(
                str(brand_mark_path),
                x=self.margin_l,
                y=(HEADER_BAR_H_MM - logo_h) / 2,
                w=logo_w,
                h=logo_h,
            )

        text_x = self.margin_l + LOGO_MAX_W_MM + 6
        text_y = HEADER_BAR_H_MM / 2 - 1
        self._set_style(15, "B", BRAND_GREEN)
        self._pdf.text(text_x, text_y, ASSOCIATION_NAME)
        self._set_style(12, "", (70, 70, 70))
        self._pdf.text(text_x, text_y + 8, COMMITTEE_NAME)

        self.cursor_y = HEADER_BAR_H_MM + 15
        self._pdf.set_draw_color(200, 200, 200)
        self._pdf.set_line_width(0.5)
        self._pdf.line(self.margin_l, self.cursor_y, self.page_w - self.margin_r, self.cursor_y)
        self.cursor_y += 12

    def draw_body(self, record: ReviewRecord, *, has_attachments: bool):
        self._set_style(10, "", (100, 100, 100))
        self.line(f"Date: {format_letter_date(self.created_at)}", advance=10)

        self._set_style(11)
        self.paragraph(record.address, line_h=7)
        self.paragraph(f"Lot: {record.lot_number}", line_h=7, gap_after=8)

        self._set_style(12, "B", BRAND_GREEN)
        self.paragraph(f"RE: Architectural Review - {record.project_type_label}", line_h=6, gap_after=6)

        self._set_style(11)
        self.line(GREETING, advance=12)

        self._set_style(11, "", (30, 30, 30))
        self.paragraph(record.review_comments, gap_after=10)
        self.paragraph(record.approval_reason, gap_after=12)
        self.line(CLOSING_SENTENCE, advance=12)

        # Signature block
        self.line("Sincerely,", advance=12)
        self._set_style(11, "B", BRAND_GREEN)
        self.line(ASSOCIATION_NAME, advance=8)
        self._set_style(11, "", (70, 70, 70))
        self.line(COMMITTEE_NAME, advance=18)

        if has_attachments:
            self._set_style(9, "I", (120, 120, 120))
            self.line(ATTACHMENTS_NOTE, advance=6)

    def build(self) -> bytes:
        return bytes(self._pdf.output())
