from __future__ import annotations

from .attachment import Attachment, SourceKind
from .document import AssembledDocument, AssemblyWarning, LetterPackage, WarningKind
from .page import LETTER_SIZE_PT, PageDescriptor, PageOrigin
from .review import ProjectType, ReviewRecord

__all__ = [
    "Attachment",
    "SourceKind",
    "AssembledDocument",
    "AssemblyWarning",
    "LetterPackage",
    "WarningKind",
    "LETTER_SIZE_PT",
    "PageDescriptor",
    "PageOrigin",
    "ProjectType",
    "ReviewRecord",
]
