"""
Validation utilities for approval letters.
Shapes the raw review fields into a ReviewRecord and reports every problem at once.
"""
from typing import Any, Dict, List, Mapping, Optional

from core.errors import FieldError, RecordValidationError
from models.review import ProjectType, ReviewRecord


# Wire names, in the order problems are reported
REQUIRED_TEXT_FIELDS = (
    "address",
    "lotNumber",
    "reviewComments",
    "approvalReason",
)
PROJECT_TYPE_FIELD = "projectType"
OTHER_LABEL_FIELD = "otherProjectTypeLabel"


def clean_text(value: Any) -> Optional[str]:
    """
    Coerce a raw form value to trimmed text.

    Returns:
        The value with leading/trailing whitespace removed, or None when
        nothing is left. Inner whitespace and line breaks are kept.
    """
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    text = text.strip()
    return text or None


def normalize_review_record(raw: Mapping[str, Any]) -> ReviewRecord:
    """
    Validate raw review fields and build a ReviewRecord.

    Rules:
    - address, lotNumber, reviewComments, approvalReason must be non-empty
    - projectType must name one of the ProjectType values (or its label)
    - otherProjectTypeLabel is required when projectType is Other and
      discarded otherwise

    Raises:
        RecordValidationError: listing every missing/invalid field
    """
    errors: List[FieldError] = []
    values: Dict[str, Optional[str]] = {}

    for name in REQUIRED_TEXT_FIELDS:
        values[name] = clean_text(raw.get(name))
        if values[name] is None:
            errors.append(FieldError(name, "This field is required"))

    project_type: Optional[ProjectType] = None
    raw_type = clean_text(raw.get(PROJECT_TYPE_FIELD))
    if raw_type is None:
        errors.append(FieldError(PROJECT_TYPE_FIELD, "This field is required"))
    else:
        project_type = ProjectType.parse(raw_type)
        if project_type is None:
            allowed = ", ".join(t.value for t in ProjectType)
            errors.append(
                FieldError(
                    PROJECT_TYPE_FIELD,
                    f"projectType must be one of {allowed}, got {raw_type!r}",
                )
            )

    other_label = clean_text(raw.get(OTHER_LABEL_FIELD))
    if project_type is ProjectType.OTHER:
        if other_label is None:
            errors.append(FieldError(OTHER_LABEL_FIELD, "Please specify the project type"))
    else:
        other_label = None

    if errors:
        raise RecordValidationError(errors)

    return ReviewRecord(
        address=values["address"],
        lot_number=values["lotNumber"],
        project_type=project_type,
        review_comments=values["reviewComments"],
        approval_reason=values["approvalReason"],
        other_project_type_label=other_label,
    )

