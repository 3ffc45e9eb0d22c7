# services/api/models/review.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class ProjectType(str, Enum):
    """
    Project categories the Architectural Review Committee signs off on.
    The value is the wire form; `label` is what appears on the letter.
    """
    NEW_HOME = "NewHome"
    RENOVATION = "Renovation"
    ACCESSORY = "Accessory"
    POOL = "Pool"
    OTHER = "Other"

    @property
    def label(self) -> str:
        return _PROJECT_TYPE_LABELS[self]

    @classmethod
    def parse(cls, raw: str) -> Optional["ProjectType"]:
        """Match a wire value or a display label, ignoring case and spaces."""
        key = "".join(raw.split()).lower()
        for member in cls:
            if key in (member.value.lower(), "".join(member.label.split()).lower()):
                return member
        return None


_PROJECT_TYPE_LABELS = {
    ProjectType.NEW_HOME: "New Home",
    ProjectType.RENOVATION: "Renovation",
    ProjectType.ACCESSORY: "Accessory Structure",
    ProjectType.POOL: "Pool",
    ProjectType.OTHER: "Other",
}


@dataclass(frozen=True)
class ReviewRecord:
    """
    A validated architectural review, ready for rendering.
    Build it through core.validation.normalize_review_record.
    """
    address: str
    lot_number: str
    project_type: ProjectType
    review_comments: str
    approval_reason: str
    other_project_type_label: Optional[str] = None
    generated_at: Optional[datetime] = None

    @property
    def project_type_label(self) -> str:
        if self.project_type is ProjectType.OTHER:
            return self.other_project_type_label or ProjectType.OTHER.label
        return self.project_type.label
