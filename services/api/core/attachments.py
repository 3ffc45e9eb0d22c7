# services/api/core/attachments.py

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import PurePath
from typing import Callable, Dict, Optional, Tuple

import pypdfium2 as pdfium
from fpdf import FPDF
from fpdf.enums import XPos, YPos
from PIL import Image, ImageOps

from core.letterhead import to_latin1
from models.attachment import SourceKind
from models.document import AssemblyWarning, WarningKind
from models.page import LETTER_SIZE_PT, PageDescriptor, PageOrigin, center_in, fit_within

logger = logging.getLogger(__name__)

IMAGE_MARGIN_PT = 36.0           # 0.5 inch around embedded images
PLACEHOLDER_MARGIN_PT = 72.0

PLACEHOLDER_TITLE = "Attachment not embedded"
PLACEHOLDER_NOTICE = (
    "This file was submitted with the architectural review but could not be "
    "embedded in this letter. Please refer to the original file."
)

IMAGE_MIME_TYPES = {
    "image/jpeg", "image/jpg", "image/pjpeg", "image/png",
    "image/gif", "image/bmp", "image/x-ms-bmp", "image/tiff", "image/webp",
}
PDF_MIME_TYPES = {"application/pdf", "application/x-pdf"}
GENERIC_MIME_TYPES = {"", "application/octet-stream", "binary/octet-stream"}

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tif", ".tiff", ".webp"}
PDF_EXTENSIONS = {".pdf"}

_IMAGE_SIGNATURES = (
    b"\xff\xd8\xff",             # JPEG
    b"\x89PNG\r\n\x1a\n",        # PNG
    b"GIF87a",
    b"GIF89a",
    b"II*\x00",                  # TIFF little endian
    b"MM\x00*",                  # TIFF big endian
)


@dataclass
class ConvertedAttachment:
    """
    Pages produced from one upload, still sitting in their own PDF.
    The assembler imports them into the output and then calls close().
    """
    attachment_id: str
    filename: str
    kind: SourceKind
    source: pdfium.PdfDocument
    pages: Tuple[PageDescriptor, ...]
    byte_size: int
    warnings: Tuple[AssemblyWarning, ...] = ()

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def close(self):
        self.source.close()


# ---------- Classification ---------------------------------------------------

def sniff_kind(payload: bytes) -> Optional[SourceKind]:
    """Identify a payload by its leading bytes, regardless of what it claims to be."""
    head = payload[:1024]
    if head.find(b"%PDF-") != -1:
        return SourceKind.EXISTING_DOCUMENT
    if head.startswith(_IMAGE_SIGNATURES):
        return SourceKind.RASTER_IMAGE
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return SourceKind.RASTER_IMAGE
    return None


def declared_kind(filename: str, content_type: Optional[str]) -> Optional[SourceKind]:
    """What the upload says it is: MIME hint first, file extension as fallback."""
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime in PDF_MIME_TYPES:
        return SourceKind.EXISTING_DOCUMENT
    if mime in IMAGE_MIME_TYPES:
        return SourceKind.RASTER_IMAGE
    if mime not in GENERIC_MIME_TYPES:
        return None

    suffix = PurePath(filename or "").suffix.lower()
    if suffix in PDF_EXTENSIONS:
        return SourceKind.EXISTING_DOCUMENT
    if suffix in IMAGE_EXTENSIONS:
        return SourceKind.RASTER_IMAGE
    return None


def classify_attachment(filename: str, content_type: Optional[str], payload: bytes) -> SourceKind:
    """
    Derive the SourceKind of an upload.

    The bytes win over the label. A recognised label with unrecognised bytes
    keeps its declared kind so that decoding fails and is reported as such.
    """
    sniffed = sniff_kind(payload)
    declared = declared_kind(filename, content_type)
    if sniffed is not None:
        if declared is not None and declared is not sniffed:
            logger.debug(f"{filename}: declared {declared.value} but content is {sniffed.value}")
        return sniffed
    if declared is not None:
        return declared
    return SourceKind.UNSUPPORTED


# ---------- Public API -------------------------------------------------------

def convert_attachment(
    attachment_id: str,
    filename: str,
    content_type: Optional[str],
    payload: bytes,
    *,
    page_size: Tuple[float, float] = LETTER_SIZE_PT,
) -> ConvertedAttachment:
    """
    Turn one upload into pages.

    Never raises: an unsupported type or a decode error yields a single
    placeholder page plus a warning, so one bad file cannot affect the others.
    """
    kind = classify_attachment(filename, content_type, payload)
    handler = _HANDLERS[kind]
    try:
        converted = handler(attachment_id, filename, content_type, payload, page_size)
    except Exception as e:
        logger.warning(f"Failed to decode attachment {attachment_id} ({filename}) as {kind.value}: {e}")
        return placeholder_for_failure(
            attachment_id,
            filename,
            reason=str(e) or type(e).__name__,
            kind=kind,
            page_size=page_size,
        )

    logger.info(
        f"Converted attachment {attachment_id} ({filename}) as {kind.value}: "
        f"{converted.page_count} page(s)"
    )
    return converted


def placeholder_for_failure(
    attachment_id: str,
    filename: str,
    *,
    reason: str,
    kind: SourceKind = SourceKind.UNSUPPORTED,
    page_size: Tuple[float, float] = LETTER_SIZE_PT,
) -> ConvertedAttachment:
    warning = AssemblyWarning(
        kind=WarningKind.DECODE_FAILURE,
        attachment_id=attachment_id,
        note=f'"{filename}" could not be decoded ({reason}); a placeholder page was inserted.',
    )
    return _placeholder(attachment_id, filename, kind, warning, page_size)


# ---------- Internals --------------------------------------------------------

def _from_image(attachment_id, filename, content_type, payload, page_size) -> ConvertedAttachment:
    page_w, page_h = page_size

    with Image.open(io.BytesIO(payload)) as raw:
        raw.load()
        img = ImageOps.exif_transpose(raw)
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        px_w, px_h = img.size

        w, h = fit_within(
            px_w,
            px_h,
            page_w - 2 * IMAGE_MARGIN_PT,
            page_h - 2 * IMAGE_MARGIN_PT,
        )
        x, y = center_in(w, h, page_w, page_h)

        pdf = FPDF(orientation="P", unit="pt", format=(page_w, page_h))
        pdf.set_auto_page_break(auto=False)
        pdf.set_title(to_latin1(filename))
        pdf.add_page()
        pdf.image(img, x=x, y=y, w=w, h=h)
        pdf_bytes = bytes(pdf.output())

    page = PageDescriptor(
        origin=PageOrigin.ATTACHMENT,
        width_pt=page_w,
        height_pt=page_h,
        attachment_id=attachment_id,
    )
    return ConvertedAttachment(
        attachment_id=attachment_id,
        filename=filename,
        kind=SourceKind.RASTER_IMAGE,
        source=pdfium.PdfDocument(pdf_bytes),
        pages=(page,),
        byte_size=len(pdf_bytes),
    )


def _from_document(attachment_id, filename, content_type, payload, page_size) -> ConvertedAttachment:
    doc = pdfium.PdfDocument(payload)
    try:
        if len(doc) == 0:
            raise ValueError("document has no pages")

        pages = []
        for i in range(len(doc)):
            page = doc[i]
            try:
                width, height = page.get_size()
                rotation = page.get_rotation()
            finally:
                page.close()
            pages.append(
                PageDescriptor(
                    origin=PageOrigin.ATTACHMENT,
                    width_pt=float(width),
                    height_pt=float(height),
                    rotation=int(rotation),
                    attachment_id=attachment_id,
                    source_page_index=i,
                )
            )
    except Exception:
        doc.close()
        raise

    return ConvertedAttachment(
        attachment_id=attachment_id,
        filename=filename,
        kind=SourceKind.EXISTING_DOCUMENT,
        source=doc,
        pages=tuple(pages),
        byte_size=len(payload),
    )


def _from_unsupported(attachment_id, filename, content_type, payload, page_size) -> ConvertedAttachment:
    described = (content_type or "").strip() or "unknown type"
    warning = AssemblyWarning(
        kind=WarningKind.UNSUPPORTED_ATTACHMENT,
        attachment_id=attachment_id,
        note=f'"{filename}" ({described}) is not a supported file type; a placeholder page was inserted.',
    )
    logger.warning(f"Unsupported attachment {attachment_id} ({filename}, {described})")
    return _placeholder(attachment_id, filename, SourceKind.UNSUPPORTED, warning, page_size)


def _placeholder(
    attachment_id: str,
    filename: str,
    kind: SourceKind,
    warning: AssemblyWarning,
    page_size: Tuple[float, float],
) -> ConvertedAttachment:
    page_w, page_h = page_size

    pdf = FPDF(orientation="P", unit="pt", format=(page_w, page_h))
    pdf.set_auto_page_break(auto=False)
    pdf.set_margins(PLACEHOLDER_MARGIN_PT, PLACEHOLDER_MARGIN_PT, PLACEHOLDER_MARGIN_PT)
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 16)
    pdf.multi_cell(0, 22, PLACEHOLDER_TITLE, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(8)
    pdf.set_font("Helvetica", "", 11)
    pdf.multi_cell(0, 15, to_latin1(f"File: {filename[:300]}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(6)
    pdf.multi_cell(0, 15, PLACEHOLDER_NOTICE, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf_bytes = bytes(pdf.output())

    page = PageDescriptor(
        origin=PageOrigin.ATTACHMENT,
        width_pt=page_w,
        height_pt=page_h,
        attachment_id=attachment_id,
    )
    return ConvertedAttachment(
        attachment_id=attachment_id,
        filename=filename,
        kind=kind,
        source=pdfium.PdfDocument(pdf_bytes),
        pages=(page,),
        byte_size=len(pdf_bytes),
        warnings=(warning,),
    )


Converter = Callable[..., ConvertedAttachment]

_HANDLERS: Dict[SourceKind, Converter] = {
    SourceKind.RASTER_IMAGE: _from_image,
    SourceKind.EXISTING_DOCUMENT: _from_document,
    SourceKind.UNSUPPORTED: _from_unsupported,
}

_missing = set(SourceKind) - set(_HANDLERS)
if _missing:
    raise RuntimeError(f"No converter registered for source kinds: {sorted(k.value for k in _missing)}")
