from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class UploadedFile:
    file_name: str
    mime_type: str
    content: bytes

    @property
    def byte_size(self) -> int:
        return len(self.content)
