"""
Tests for letterhead rendering.
"""
import time
from dataclasses import replace

import pypdfium2 as pdfium
import pypdfium2.raw as pdfium_c
import pytest

from core.errors import CatastrophicRenderError
from core.letterhead import (
    ASSOCIATION_NAME,
    ATTACHMENTS_NOTE,
    COMMITTEE_NAME,
    FIRST_BASELINE_MM,
    MARGIN_MM,
    _LetterBuilder,
    render_letterhead,
    to_latin1,
)
from core.validation import normalize_review_record
from models.page import LETTER_SIZE_PT, PageOrigin
from settings import get_settings


@pytest.fixture
def record(review_fields, fixed_now):
    return replace(normalize_review_record(review_fields), generated_at=fixed_now)


@pytest.fixture
def brand_mark():
    return get_settings().resolved_brand_mark_path()


@pytest.fixture
def png_brand_mark(tmp_path, make_image):
    path = tmp_path / "logo.png"
    path.write_bytes(make_image(200, 100))
    return path


def _texts(pdf_bytes):
    pdf = pdfium.PdfDocument(pdf_bytes)
    try:
        out = []
        for i in range(len(pdf)):
            page = pdf[i]
            textpage = page.get_textpage()
            out.append(textpage.get_text_range())
            textpage.close()
            page.close()
        return out
    finally:
        pdf.close()


def _image_counts(pdf_bytes):
    pdf = pdfium.PdfDocument(pdf_bytes)
    try:
        counts = []
        for i in range(len(pdf)):
            page = pdf[i]
            counts.append(len(list(page.get_objects(filter=[pdfium_c.FPDF_PAGEOBJ_IMAGE]))))
            page.close()
        return counts
    finally:
        pdf.close()


RIGHT_LIMIT_PT = LETTER_SIZE_PT[0] - 72 + 1


def _char_boxes(pdf_bytes, index):
    pdf = pdfium.PdfDocument(pdf_bytes)
    try:
        page = pdf[index]
        textpage = page.get_textpage()
        boxes = []
        for i in range(textpage.count_chars()):
            if textpage.get_text_range(i, 1).strip():
                boxes.append(textpage.get_charbox(i))
        textpage.close()
        page.close()
        return boxes
    finally:
        pdf.close()


def _max_right(pdf_bytes, index):
    return max(right for _, _, right, _ in _char_boxes(pdf_bytes, index))


def _max_top(pdf_bytes, index):
    return max(top for _, _, _, top in _char_boxes(pdf_bytes, index))


class TestRenderLetterhead:

    def test_short_review_fits_one_page(self, record, brand_mark):
        letter = render_letterhead(record, brand_mark_path=brand_mark)
        assert letter.page_count == 1
        page = letter.pages[0]
        assert page.origin is PageOrigin.LETTER
        assert (page.width_pt, page.height_pt) == LETTER_SIZE_PT
        assert letter.pdf_bytes.startswith(b"%PDF-")

    def test_letter_content(self, record, brand_mark):
        """Date, property, project type and both review texts are on the letter."""
        text = _texts(render_letterhead(record, brand_mark_path=brand_mark).pdf_bytes)[0]
        assert "Date: 09_01_2025" in text
        assert "113 Juniper Court" in text
        assert "Lot: 434" in text
        assert "RE: Architectural Review - Pool" in text
        assert "pool plans and site survey" in text
        assert "setback and fencing guidelines" in text
        assert ASSOCIATION_NAME in text
        assert ATTACHMENTS_NOTE not in text

    def test_attachments_note(self, record, brand_mark):
        letter = render_letterhead(record, brand_mark_path=brand_mark, has_attachments=True)
        assert ATTACHMENTS_NOTE in _texts(letter.pdf_bytes)[-1]

    def test_other_label_in_subject(self, review_fields, fixed_now, brand_mark):
        review_fields["projectType"] = "Other"
        review_fields["otherProjectTypeLabel"] = "Pergola"
        record = replace(normalize_review_record(review_fields), generated_at=fixed_now)
        text = _texts(render_letterhead(record, brand_mark_path=brand_mark).pdf_bytes)[0]
        assert "RE: Architectural Review - Pergola" in text

    def test_long_review_flows_onto_more_pages(self, record, brand_mark):
        long_record = replace(
            record,
            review_comments="\n\n".join(
                f"Paragraph {i}: the committee examined the elevations, materials and drainage in detail."
                for i in range(60)
            ),
        )
        letter = render_letterhead(long_record, brand_mark_path=brand_mark)
        assert letter.page_count > 1
        assert [p.source_page_index for p in letter.pages] == list(range(letter.page_count))

        texts = _texts(letter.pdf_bytes)
        assert len(texts) == letter.page_count
        assert "Paragraph 59" in "".join(texts)
        # the closing block lands after the last paragraph
        assert COMMITTEE_NAME in texts[-1]

    def test_brand_mark_only_on_first_page(self, record, png_brand_mark):
        long_record = replace(record, approval_reason="Approved. " * 900)
        letter = render_letterhead(long_record, brand_mark_path=png_brand_mark)
        counts = _image_counts(letter.pdf_bytes)
        assert len(counts) > 1
        assert counts[0] == 1
        assert all(c == 0 for c in counts[1:])

    def test_unbroken_long_word_is_split(self, record, brand_mark):
        """A word wider than the text column must not run off the page."""
        letter = render_letterhead(
            replace(record, review_comments="x" * 400),
            brand_mark_path=brand_mark,
        )
        assert "x" * 40 in _texts(letter.pdf_bytes)[0]

    def test_long_unbroken_text_renders_quickly(self, record, brand_mark):
        """A pasted blob without spaces is cut into rows in one pass."""
        started = time.monotonic()
        letter = render_letterhead(
            replace(record, review_comments="x" * 20000),
            brand_mark_path=brand_mark,
        )
        assert time.monotonic() - started < 10
        assert letter.page_count > 1
        assert "".join(_texts(letter.pdf_bytes)).count("x") == 20000

    def test_long_lot_number_wraps_inside_margin(self, record, brand_mark):
        letter = render_letterhead(
            replace(record, lot_number="LOT-" + "7" * 200),
            brand_mark_path=brand_mark,
        )
        assert "".join(_texts(letter.pdf_bytes)).count("7") == 200
        for i in range(letter.page_count):
            assert _max_right(letter.pdf_bytes, i) <= RIGHT_LIMIT_PT

    def test_text_stays_inside_right_margin(self, record, brand_mark):
        long_record = replace(
            record,
            review_comments=" ".join(["Setback"] * 400),
            approval_reason="https://example.org/" + "a" * 600,
        )
        letter = render_letterhead(long_record, brand_mark_path=brand_mark)
        for i in range(letter.page_count):
            assert _max_right(letter.pdf_bytes, i) <= RIGHT_LIMIT_PT

    def test_continuation_page_starts_at_top_margin(self, record, brand_mark):
        long_record = replace(record, review_comments="Continued text. " * 600)
        letter = render_letterhead(long_record, brand_mark_path=brand_mark)
        assert letter.page_count > 1

        top = _max_top(letter.pdf_bytes, 1)
        # first baseline sits just below the top margin, no header gap
        assert LETTER_SIZE_PT[1] - 72 - 20 <= top <= LETTER_SIZE_PT[1] - 72

    def test_same_input_same_pages(self, record, brand_mark):
        first = render_letterhead(record, brand_mark_path=brand_mark)
        second = render_letterhead(record, brand_mark_path=brand_mark)
        assert first.pages == second.pages
        assert _texts(first.pdf_bytes) == _texts(second.pdf_bytes)


class TestLetterFlow:
    """Page breaks happen only once a baseline would sit in the bottom margin."""

    @pytest.fixture
    def builder(self, fixed_now):
        builder = _LetterBuilder(created_at=fixed_now)
        builder._set_style(11)
        return builder

    def test_line_on_bottom_margin_stays(self, builder):
        limit = builder.page_h - MARGIN_MM
        builder.cursor_y = limit
        builder.line("Last line of the page", advance=6)
        assert builder.page_count == 1
        assert builder.cursor_y == pytest.approx(limit + 6)

    def test_line_past_bottom_margin_moves_to_next_page(self, builder):
        builder.cursor_y = builder.page_h - MARGIN_MM
        builder.line("Last line of the page", advance=6)
        builder.line("First line of the next page", advance=6)
        assert builder.page_count == 2
        assert builder.cursor_y == pytest.approx(MARGIN_MM + FIRST_BASELINE_MM + 6)

    def test_wrapped_rows_fit_content_width(self, builder):
        rows = builder._wrap("word " * 300)
        assert len(rows) > 1
        assert all(builder._pdf.get_string_width(row.rstrip()) <= builder.content_w for row in rows)


class TestRenderFailures:

    def test_missing_brand_mark(self, record, tmp_path):
        with pytest.raises(CatastrophicRenderError):
            render_letterhead(record, brand_mark_path=tmp_path / "missing.png")

    def test_corrupt_brand_mark(self, record, tmp_path):
        bad = tmp_path / "logo.png"
        bad.write_bytes(b"not an image at all")
        with pytest.raises(CatastrophicRenderError):
            render_letterhead(record, brand_mark_path=bad)

    def test_record_without_timestamp(self, review_fields, brand_mark):
        with pytest.raises(CatastrophicRenderError):
            render_letterhead(normalize_review_record(review_fields), brand_mark_path=brand_mark)


class TestToLatin1:

    def test_typographic_punctuation(self):
        assert to_latin1("“Owner’s” – deck…") == "\"Owner's\" - deck..."

    def test_latin1_kept_and_others_replaced(self):
        assert to_latin1("Façade") == "Façade"
        assert to_latin1("池 pond") == "? pond"
