"""
File upload contract.

Pinion does not parse multipart bodies itself: a ``FileParser`` factory is
supplied through ``Configuration.file_parser`` and bound with ``bind.file()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol


@dataclass(frozen=True)
class FileUploadInfo:
    """Metadata of a stored upload."""
    field: str
    file_name: str
    original_name: str
    mime: str
    size: int
    encoding: str


class FileParser(Protocol):
    """Multipart parser handle bound to a single request."""

    async def save(self, sub_directory: Optional[str] = None) -> List[FileUploadInfo]:
        ...
