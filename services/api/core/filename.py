# services/api/core/filename.py

from __future__ import annotations

import re
from datetime import datetime

FILENAME_PREFIX = "Sanctuary Architectural Approval Letter"
ILLEGAL_FILENAME_CHARS = '/\\:*?"<>|'
SAFE_SUBSTITUTE = "-"

_ILLEGAL_RE = re.compile("[" + re.escape(ILLEGAL_FILENAME_CHARS) + r"\x00-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")


def format_letter_date(value: datetime) -> str:
    """DD_MM_YYYY, the date form used on the letter and in its filename."""
    return value.strftime("%d_%m_%Y")


def sanitize_address(address: str) -> str:
    collapsed = _WHITESPACE_RE.sub(" ", address).strip()
    return _ILLEGAL_RE.sub(SAFE_SUBSTITUTE, collapsed)


def synthesize_filename(
    lot_number: str,
    address: str,
    project_type_label: str,
    generated_at: datetime,
) -> str:
    """
    Canonical download / storage name of an approval letter, e.g.
    "Sanctuary Architectural Approval Letter - 434 - 113 Juniper Court - Pool - 09_01_2025.pdf"
    """
    return (
        f"{FILENAME_PREFIX} - {lot_number.strip()} - {sanitize_address(address)} - "
        f"{project_type_label.strip()} - {format_letter_date(generated_at)}.pdf"
    )
