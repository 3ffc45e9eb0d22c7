from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple

from .page import PageDescriptor, PageOrigin


class WarningKind(str, Enum):
    UNSUPPORTED_ATTACHMENT = "UnsupportedAttachment"
    DECODE_FAILURE = "DecodeFailure"
    SIZE_EXCEEDED = "SizeExceeded"


@dataclass(frozen=True)
class AssemblyWarning:
    """
    Advisory outcome returned next to a finished letter.
    Never stops the letter from being produced.
    """
    kind: WarningKind
    note: str
    attachment_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "attachment_id": self.attachment_id,
            "note": self.note,
        }


@dataclass
class AssembledDocument:
    """
    Ordered pages of one letter plus size/warning accounting.

    `pdf` is the in-memory output document (pypdfium2) the pages were
    imported into; core.packager serialises and closes it.
    """
    pages: Tuple[PageDescriptor, ...]
    byte_size: int
    warnings: List[AssemblyWarning] = field(default_factory=list)
    pdf: Any = field(default=None, repr=False)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def letter_page_count(self) -> int:
        return sum(1 for p in self.pages if p.origin is PageOrigin.LETTER)

    def has_warning(self, kind: WarningKind) -> bool:
        return any(w.kind is kind for w in self.warnings)


@dataclass(frozen=True)
class LetterPackage:
    """What the caller gets back: the PDF bytes, its name and the warnings."""
    content: bytes = field(repr=False)
    filename: str
    warnings: Tuple[AssemblyWarning, ...]
    page_count: int
    letter_page_count: int

    @property
    def byte_size(self) -> int:
        return len(self.content)

    def has_warning(self, kind: WarningKind) -> bool:
        return any(w.kind is kind for w in self.warnings)
