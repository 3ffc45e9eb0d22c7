"""
Pydantic schemas for approval letters.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.document import AssemblyWarning
from models.review import ProjectType, ReviewRecord


class ReviewRecordIn(BaseModel):
    """
    Raw review fields as posted by the review form.
    Everything is optional here; core.validation reports what is missing.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    address: Optional[str] = Field(None, description="Property address")
    lot_number: Optional[str] = Field(None, alias="lotNumber", description="Lot number")
    project_type: Optional[str] = Field(
        None,
        alias="projectType",
        description="NewHome, Renovation, Accessory, Pool or Other",
    )
    other_project_type_label: Optional[str] = Field(
        None,
        alias="otherProjectTypeLabel",
        description="Free-text project type, required when projectType is Other",
    )
    review_comments: Optional[str] = Field(None, alias="reviewComments")
    approval_reason: Optional[str] = Field(None, alias="approvalReason")

    def to_raw(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ReviewRecordOut(BaseModel):
    """Normalized review, echoed back by /letters/validate."""
    model_config = ConfigDict(populate_by_name=True)

    address: str
    lot_number: str = Field(..., alias="lotNumber")
    project_type: str = Field(..., alias="projectType")
    project_type_label: str = Field(..., alias="projectTypeLabel")
    other_project_type_label: Optional[str] = Field(None, alias="otherProjectTypeLabel")
    review_comments: str = Field(..., alias="reviewComments")
    approval_reason: str = Field(..., alias="approvalReason")

    @classmethod
    def from_record(cls, record: ReviewRecord) -> "ReviewRecordOut":
        return cls(
            address=record.address,
            lot_number=record.lot_number,
            project_type=record.project_type.value,
            project_type_label=record.project_type_label,
            other_project_type_label=record.other_project_type_label,
            review_comments=record.review_comments,
            approval_reason=record.approval_reason,
        )


class FieldErrorOut(BaseModel):
    field: str
    message: str


class ValidationFailedOut(BaseModel):
    """422 body: every invalid field at once."""
    detail: str = "VALIDATION_FAILED"
    errors: List[FieldErrorOut] = Field(default_factory=list)


class WarningOut(BaseModel):
    kind: str
    attachment_id: Optional[str] = None
    note: str

    @classmethod
    def from_warning(cls, warning: AssemblyWarning) -> "WarningOut":
        return cls(**warning.to_dict())


class ProjectTypeOut(BaseModel):
    value: str
    label: str

    @classmethod
    def all(cls) -> List["ProjectTypeOut"]:
        return [cls(value=t.value, label=t.label) for t in ProjectType]
