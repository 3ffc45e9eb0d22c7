"""
Shared fixtures: review fields and in-memory uploads (images built with
Pillow, PDFs built with fpdf2).
"""
import io
import os
import sys
from datetime import datetime, timezone

import pytest
from fpdf import FPDF
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.attachment import Attachment


@pytest.fixture
def review_fields():
    return {
        "address": "113 Juniper Court",
        "lotNumber": "434",
        "projectType": "Pool",
        "reviewComments": "The committee reviewed the pool plans and site survey.",
        "approvalReason": "The pool meets the setback and fencing guidelines.",
    }


@pytest.fixture
def fixed_now():
    return datetime(2025, 1, 9, 15, 30, tzinfo=timezone.utc)


@pytest.fixture
def make_image():
    def _make(width=400, height=300, fmt="PNG", color=(40, 120, 60)):
        buf = io.BytesIO()
        Image.new("RGB", (width, height), color).save(buf, format=fmt)
        return buf.getvalue()
    return _make


@pytest.fixture
def make_pdf():
    """PDF with one page per (width_pt, height_pt) entry."""
    def _make(sizes=((612, 792),)):
        pdf = FPDF(unit="pt", format=tuple(sizes[0]))
        pdf.set_font("Helvetica", "", 12)
        for i, size in enumerate(sizes, start=1):
            pdf.add_page(format=tuple(size))
            pdf.text(72, 72, f"Source page {i}")
        return bytes(pdf.output())
    return _make


@pytest.fixture
def upload():
    def _upload(filename, content_type, payload, attachment_id=None):
        return Attachment.from_bytes(filename, content_type, payload, attachment_id=attachment_id)
    return _upload
