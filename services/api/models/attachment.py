# services/api/models/attachment.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional


class SourceKind(str, Enum):
    """
    Closed set of things an uploaded file can turn into.
    core.attachments dispatches on every member; extend both together.
    """
    RASTER_IMAGE = "RasterImage"
    EXISTING_DOCUMENT = "ExistingDocument"
    UNSUPPORTED = "Unsupported"


PayloadReader = Callable[[], Awaitable[bytes]]


@dataclass
class Attachment:
    """
    One uploaded file as handed over by the caller.

    The payload is pulled through `read()` when the assembler reaches this
    attachment, so only one decoded upload is in memory at a time.
    """
    filename: str
    content_type: Optional[str]
    reader: PayloadReader = field(repr=False)
    attachment_id: Optional[str] = None

    async def read(self) -> bytes:
        return await self.reader()

    @classmethod
    def from_bytes(
        cls,
        filename: str,
        content_type: Optional[str],
        payload: bytes,
        attachment_id: Optional[str] = None,
    ) -> "Attachment":
        async def _reader() -> bytes:
            return payload

        return cls(
            filename=filename,
            content_type=content_type,
            reader=_reader,
            attachment_id=attachment_id,
        )
