# services/api/core/assembler.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional

import pypdfium2 as pdfium

from core.attachments import ConvertedAttachment, placeholder_for_failure
from core.letterhead import RenderedLetter
from models.document import AssembledDocument, AssemblyWarning, WarningKind
from models.page import PageDescriptor, PageOrigin
from models.review import ReviewRecord

logger = logging.getLogger(__name__)


@dataclass
class AssemblyContext:
    """
    Everything one letter assembly owns. Created fresh per invocation and
    never shared; the output PDF lives here until the packager takes it.
    """
    record: ReviewRecord
    size_ceiling: Optional[int] = None
    output: Optional[pdfium.PdfDocument] = field(default_factory=pdfium.PdfDocument.new, repr=False)
    pages: List[PageDescriptor] = field(default_factory=list)
    warnings: List[AssemblyWarning] = field(default_factory=list)
    byte_size: int = 0

    def close(self):
        """Drop the output PDF unless finish() already handed it over."""
        if self.output is not None:
            self.output.close()
            self.output = None


class DocumentAssembler:
    """
    Appends pages to the output in the order they are handed in:
    the letter first, then each attachment as soon as its conversion finishes.
    """

    def __init__(self, context: AssemblyContext):
        self.ctx = context
        self._attachment_seen = False

    def add_letter(self, letter: RenderedLetter):
        if self.ctx.pages or self._attachment_seen:
            raise RuntimeError("The letter must be added before any other page")

        source = pdfium.PdfDocument(letter.pdf_bytes)
        try:
            self._import(source, letter.pages)
        finally:
            source.close()
        self._account(len(letter.pdf_bytes))

    def add_attachment(self, converted: ConvertedAttachment):
        self._attachment_seen = True
        try:
            try:
                self._import(converted.source, converted.pages)
            except pdfium.PdfiumError as e:
                logger.warning(f"Could not import pages of {converted.attachment_id}: {e}")
                converted.close()
                converted = placeholder_for_failure(
                    converted.attachment_id,
                    converted.filename,
                    reason=f"page import failed: {e}",
                    kind=converted.kind,
                )
                self._import(converted.source, converted.pages)
        finally:
            converted.close()

        self.ctx.warnings.extend(converted.warnings)
        self._account(converted.byte_size)

    def _import(self, source: pdfium.PdfDocument, pages):
        start = len(self.ctx.output)
        self.ctx.output.import_pages(source, pages=[p.source_page_index for p in pages])
        for offset, page in enumerate(pages):
            self.ctx.pages.append(replace(page, output_index=start + offset))

    def _account(self, nbytes: int):
        """Running estimate from source sizes; the packager checks the real output size."""
        self.ctx.byte_size += nbytes
        ceiling = self.ctx.size_ceiling
        if ceiling is None or self.ctx.byte_size <= ceiling:
            return
        if any(w.kind is WarningKind.SIZE_EXCEEDED for w in self.ctx.warnings):
            return
        logger.warning(f"Letter size {self.ctx.byte_size} bytes exceeds ceiling of {ceiling} bytes")
        self.ctx.warnings.append(
            AssemblyWarning(
                kind=WarningKind.SIZE_EXCEEDED,
                note=(
                    f"The letter is {self.ctx.byte_size} bytes, above the storage limit "
                    f"of {ceiling} bytes."
                ),
            )
        )

    def finish(self) -> AssembledDocument:
        letter_pages = [p for p in self.ctx.pages if p.origin is PageOrigin.LETTER]
        if not letter_pages or self.ctx.pages[: len(letter_pages)] != letter_pages:
            raise RuntimeError("Letter pages must lead the assembled document")

        logger.info(
            f"Assembled letter for lot {self.ctx.record.lot_number}: "
            f"{len(self.ctx.pages)} page(s), {len(letter_pages)} letter page(s), "
            f"{self.ctx.byte_size} bytes, {len(self.ctx.warnings)} warning(s)"
        )
        # ownership of the output PDF moves to the document
        pdf, self.ctx.output = self.ctx.output, None
        return AssembledDocument(
            pages=tuple(self.ctx.pages),
            byte_size=self.ctx.byte_size,
            warnings=list(self.ctx.warnings),
            pdf=pdf,
        )
