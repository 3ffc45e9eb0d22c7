# services/api/models/page.py

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


# US Letter in PDF points (1/72 inch)
LETTER_SIZE_PT: Tuple[float, float] = (612.0, 792.0)


class PageOrigin(str, Enum):
    LETTER = "Letter"
    ATTACHMENT = "AttachmentPage"


@dataclass(frozen=True)
class PageDescriptor:
    """
    Lightweight page descriptor at domain level.
    """
    origin: PageOrigin
    width_pt: float
    height_pt: float
    rotation: int = 0                      # 0, 90, 180, 270
    attachment_id: Optional[str] = None    # None for letter pages
    source_page_index: int = 0             # 0-based, inside its own source PDF
    output_index: Optional[int] = None     # 0-based, inside the assembled PDF


def fit_within(
    src_w: float,
    src_h: float,
    box_w: float,
    box_h: float,
) -> Tuple[float, float]:
    """
    Scale (src_w, src_h) to the largest size that fits inside the box
    while keeping the aspect ratio. Small sources are scaled up too.
    """
    if src_w <= 0 or src_h <= 0:
        raise ValueError(f"source size must be positive, got {src_w}x{src_h}")
    scale = min(box_w / src_w, box_h / src_h)
    return src_w * scale, src_h * scale


def center_in(
    w: float,
    h: float,
    page_w: float,
    page_h: float,
) -> Tuple[float, float]:
    """Top-left (x, y) that centers a w x h box on the page."""
    return (page_w - w) / 2.0, (page_h - h) / 2.0
