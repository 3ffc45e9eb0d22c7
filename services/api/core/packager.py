# services/api/core/packager.py

from __future__ import annotations

import io
import logging
from typing import Optional

from models.document import AssembledDocument, AssemblyWarning, LetterPackage, WarningKind

logger = logging.getLogger(__name__)


def package_document(
    document: AssembledDocument,
    filename: str,
    *,
    size_ceiling: Optional[int] = None,
) -> LetterPackage:
    """
    Serialise the assembled PDF into one buffer and pair it with its name
    and warnings. The in-memory document is closed before returning.

    The serialised size decides SizeExceeded: the assembler's running
    estimate is replaced by at most one warning carrying the real size.
    """
    buffer = io.BytesIO()
    try:
        document.pdf.save(buffer)
    finally:
        document.pdf.close()
    content = buffer.getvalue()

    warnings = [w for w in document.warnings if w.kind is not WarningKind.SIZE_EXCEEDED]
    oversized = size_ceiling is not None and len(content) > size_ceiling
    if oversized:
        logger.warning(f"Packaged letter {filename!r} is {len(content)} bytes (ceiling {size_ceiling})")
        warnings.append(
            AssemblyWarning(
                kind=WarningKind.SIZE_EXCEEDED,
                note=f"The letter is {len(content)} bytes, above the storage limit of {size_ceiling} bytes.",
            )
        )
    elif document.has_warning(WarningKind.SIZE_EXCEEDED):
        logger.info(
            f"Packaged letter {filename!r} is {len(content)} bytes, within the ceiling "
            f"after merging ({document.byte_size} bytes of sources)"
        )

    logger.info(f"Packaged {filename!r}: {document.page_count} page(s), {len(content)} bytes")
    return LetterPackage(
        content=content,
        filename=filename,
        warnings=tuple(warnings),
        page_count=document.page_count,
        letter_page_count=document.letter_page_count,
    )
