from __future__ import annotations

import io
import json
import logging
import re
import urllib.parse
from typing import List, Optional

from fastapi import APIRouter, Body, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import JSONResponse, StreamingResponse

from core.errors import CatastrophicRenderError, RecordValidationError
from core.pipeline import generate_approval_letter
from core.validation import normalize_review_record
from models.attachment import Attachment
from models.document import LetterPackage, WarningKind
from schemas.letter import (
    FieldErrorOut,
    ProjectTypeOut,
    ReviewRecordIn,
    ReviewRecordOut,
    ValidationFailedOut,
    WarningOut,
)
from settings import get_settings

# Set up logger
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/letters", tags=["letters"])

# Header values may not carry control characters (lot and label are free text)
_HEADER_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]+")


# ========== Helpers ==========

def _validation_failed(e: RecordValidationError) -> JSONResponse:
    body = ValidationFailedOut(
        errors=[FieldErrorOut(**err.to_dict()) for err in e.errors]
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=body.model_dump(),
    )


def _content_disposition(filename: str) -> str:
    """
    ASCII fallback for old clients plus the RFC 5987 form that keeps
    non-ASCII characters. Control characters become spaces in both.
    """
    filename = _HEADER_CONTROL_RE.sub(" ", filename)
    fallback = filename.encode("ascii", "ignore").decode("ascii").replace('"', "'")
    quoted = urllib.parse.quote(filename, safe="")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quoted}"


def _letter_response(package: LetterPackage) -> StreamingResponse:
    warnings = [WarningOut.from_warning(w).model_dump() for w in package.warnings]
    return StreamingResponse(
        io.BytesIO(package.content),
        media_type="application/pdf",
        headers={
            "Content-Disposition": _content_disposition(package.filename),
            "Cache-Control": "no-store",
            "X-Letter-Page-Count": str(package.page_count),
            "X-Letter-Warnings": json.dumps(warnings),
        },
    )


# ========== Endpoints ==========

@router.get("/project-types", response_model=List[ProjectTypeOut])
async def list_project_types():
    """Project types the review form can offer, with their letter labels."""
    return ProjectTypeOut.all()


@router.post("/validate", response_model=ReviewRecordOut)
async def validate_review(body: ReviewRecordIn = Body(...)):
    """
    Check a review before any file is uploaded.
    Returns the normalized record, or 422 listing every invalid field.
    """
    try:
        record = normalize_review_record(body.to_raw())
    except RecordValidationError as e:
        return _validation_failed(e)
    return ReviewRecordOut.from_record(record)


@router.post("/generate")
async def generate_letter(
    address: Optional[str] = Form(None),
    lot_number: Optional[str] = Form(None, alias="lotNumber"),
    project_type: Optional[str] = Form(None, alias="projectType"),
    other_project_type_label: Optional[str] = Form(None, alias="otherProjectTypeLabel"),
    review_comments: Optional[str] = Form(None, alias="reviewComments"),
    approval_reason: Optional[str] = Form(None, alias="approvalReason"),
    files: Optional[List[UploadFile]] = File(default=None),
    size_ceiling_bytes: Optional[int] = Query(None, gt=0),
):
    """
    Build the approval letter PDF (letterhead + uploaded files, in upload order)
    and return it as a download.

    - 422: the review is incomplete (all invalid fields are listed)
    - 413: the letter is above the storage ceiling and the deployment rejects oversize letters
    - 200: PDF; advisory warnings are in the X-Letter-Warnings header (JSON list)
    """
    settings = get_settings()
    uploads = files or []

    if len(uploads) > settings.max_attachments_per_letter:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"TOO_MANY_ATTACHMENTS: {len(uploads)} > {settings.max_attachments_per_letter}",
        )

    raw = {
        "address": address,
        "lotNumber": lot_number,
        "projectType": project_type,
        "otherProjectTypeLabel": other_project_type_label,
        "reviewComments": review_comments,
        "approvalReason": approval_reason,
    }
    attachments = [
        Attachment(
            filename=upload.filename or f"upload-{i}",
            content_type=upload.content_type,
            reader=upload.read,
            attachment_id=f"attachment-{i}",
        )
        for i, upload in enumerate(uploads, start=1)
    ]

    try:
        package = await generate_approval_letter(
            raw,
            attachments,
            size_ceiling=size_ceiling_bytes,
        )
    except RecordValidationError as e:
        logger.info(f"Rejected letter request: {e}")
        return _validation_failed(e)
    except CatastrophicRenderError as e:
        logger.error(f"Letterhead could not be rendered: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"LETTERHEAD_RENDER_FAILED: {e}",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error in generate_letter: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}",
        )

    if settings.reject_oversized_letters and package.has_warning(WarningKind.SIZE_EXCEEDED):
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"LETTER_TOO_LARGE: {package.byte_size} bytes",
        )

    logger.info(
        f"Generated {package.filename!r}: {package.page_count} page(s), "
        f"{package.byte_size} bytes, {len(package.warnings)} warning(s)"
    )
    return _letter_response(package)
