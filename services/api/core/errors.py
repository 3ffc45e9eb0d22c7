# services/api/core/errors.py
"""
Fatal errors of the letter pipeline.

Per-attachment problems and oversize output are not errors: they travel
as AssemblyWarning values next to a finished letter.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class LetterAssemblyError(Exception):
    """Base class for everything that aborts a letter before output exists."""


class RecordValidationError(LetterAssemblyError):
    """One or more review fields are missing or invalid. Lists all of them."""

    def __init__(self, errors: List[FieldError]):
        self.errors = list(errors)
        joined = "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        super().__init__(f"Invalid review record ({joined})")

    @property
    def fields(self) -> List[str]:
        return [e.field for e in self.errors]


class CatastrophicRenderError(LetterAssemblyError):
    """The letterhead itself could not be rendered (e.g. brand mark missing)."""


class AssemblyCancelled(LetterAssemblyError):
    """The caller abandoned the assembly between two attachments."""
