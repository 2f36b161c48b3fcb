from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class FileInfo:
    """Metadata for one file or directory.

    ``size`` and ``mode`` are taken as given and never derived from content,
    so a directory may carry any size its producer recorded.
    """

    name: str
    size: int
    mode: int
    mod_time: datetime

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.mode)

    @property
    def permissions(self) -> int:
        return stat.S_IMODE(self.mode)

    @classmethod
    def from_stat(cls, name: str, st: os.stat_result) -> FileInfo:
        return cls(
            name=name,
            size=st.st_size,
            mode=st.st_mode,
            mod_time=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )


@dataclass(frozen=True)
class ReadResult:
    count: int
    eof: bool = False
