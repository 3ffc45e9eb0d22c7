# services/api/core/pipeline.py

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence
from zoneinfo import ZoneInfo

from core.assembler import AssemblyContext, DocumentAssembler
from core.attachments import ConvertedAttachment, convert_attachment, placeholder_for_failure
from core.errors import AssemblyCancelled
from core.filename import synthesize_filename
from core.letterhead import render_letterhead
from core.packager import package_document
from core.validation import normalize_review_record
from models.attachment import Attachment
from models.document import LetterPackage
from settings import get_settings

logger = logging.getLogger(__name__)


# ---------- Public API -------------------------------------------------------

async def generate_approval_letter(
    raw_record: Mapping[str, Any],
    attachments: Sequence[Attachment] = (),
    *,
    size_ceiling: Optional[int] = None,
    brand_mark_path: Optional[Path] = None,
    now: Optional[datetime] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> LetterPackage:
    """
    Build the approval letter PDF for one review.

    Steps:
      1) Normalize the record (RecordValidationError aborts before any rendering)
      2) Render the letterhead pages (CatastrophicRenderError aborts)
      3) Read + convert attachments one at a time, in upload order; a page is
         appended only once its conversion has finished
      4) Name and serialise the result

    `cancel_event` is checked before each attachment; once set, the partial
    output is discarded and AssemblyCancelled is raised.

    Returns:
        LetterPackage with the PDF bytes, filename and advisory warnings.
    """
    settings = get_settings()

    # 1) Validate
    record = normalize_review_record(raw_record)
    generated_at = now or datetime.now(ZoneInfo(settings.letter_timezone))
    record = replace(record, generated_at=generated_at)
    ceiling = size_ceiling if size_ceiling is not None else settings.letter_size_ceiling_bytes

    # 2) Letter
    letter = render_letterhead(
        record,
        brand_mark_path=brand_mark_path or settings.resolved_brand_mark_path(),
        has_attachments=bool(attachments),
    )

    # 3) Attachments
    ctx = AssemblyContext(record=record, size_ceiling=ceiling)
    try:
        assembler = DocumentAssembler(ctx)
        assembler.add_letter(letter)

        for position, attachment in enumerate(attachments, start=1):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Assembly for lot {record.lot_number} cancelled at attachment {position}")
                raise AssemblyCancelled(
                    f"Cancelled before attachment {position} of {len(attachments)}"
                )
            attachment_id = attachment.attachment_id or f"attachment-{position}"
            converted = await _read_and_convert(attachment_id, attachment)
            assembler.add_attachment(converted)

        document = assembler.finish()
    finally:
        ctx.close()

    # 4) Name + serialise
    filename = synthesize_filename(
        record.lot_number,
        record.address,
        record.project_type_label,
        generated_at,
    )
    return package_document(document, filename, size_ceiling=ceiling)


# ---------- Internals --------------------------------------------------------

async def _read_and_convert(attachment_id: str, attachment: Attachment) -> ConvertedAttachment:
    """Suspend on the upload read, then convert synchronously."""
    try:
        payload = await attachment.read()
    except Exception as e:
        logger.warning(f"Could not read attachment {attachment_id} ({attachment.filename}): {e}")
        return placeholder_for_failure(
            attachment_id,
            attachment.filename,
            reason=f"upload could not be read: {e}",
        )

    return convert_attachment(
        attachment_id,
        attachment.filename,
        attachment.content_type,
        payload,
    )
