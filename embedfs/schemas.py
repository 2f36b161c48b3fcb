from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel

from .services.fileinfo import FileInfo


class FileEntry(BaseModel):
    name: str
    size: int
    is_dir: bool
    mode: int
    mtime: int

    @classmethod
    def from_info(cls, info: FileInfo) -> FileEntry:
        return cls(
            name=info.name,
            size=info.size,
            is_dir=info.is_dir,
            mode=info.mode,
            mtime=int(info.mod_time.timestamp()),
        )


class ApiResponse(BaseModel):
    ok: bool
    message: str
    data: Optional[Any] = None
