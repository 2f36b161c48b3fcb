from __future__ import annotations

import os
import stat
from pathlib import Path

from .errors import ClosedFileError, InvalidDirectoryError
from .fileinfo import FileInfo, ReadResult


def validate_path(requested_path: str, root: str) -> Path:
    base = Path(root).resolve(strict=False)
    candidate = (base / requested_path.lstrip('/')).resolve(strict=False)
    if base != candidate and base not in candidate.parents:
        raise PermissionError('Path traversal detected')
    return candidate


def _entry_info(entry: os.DirEntry) -> FileInfo:
    try:
        return FileInfo.from_stat(entry.name, entry.stat())
    except FileNotFoundError:
        # dangling symlink: describe the link itself
        return FileInfo.from_stat(entry.name, entry.stat(follow_symlinks=False))


class HostHandle:
    def __init__(self, path: str):
        self.path = path
        self._fd = os.open(path, os.O_RDONLY)
        self._closed = False

    def __enter__(self) -> HostHandle:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def name(self) -> str:
        return os.path.basename(self.path.rstrip('/')) or self.path

    def _check_open(self) -> None:
        if self._closed:
            raise ClosedFileError()

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        self._check_open()
        return os.lseek(self._fd, 0, os.SEEK_CUR)

    def read_into(self, buffer) -> ReadResult:
        self._check_open()
        view = memoryview(buffer).cast('B')
        if not view.nbytes:
            return ReadResult(0)
        data = os.read(self._fd, view.nbytes)
        view[:len(data)] = data
        return ReadResult(len(data), eof=not data)

    def readinto(self, buffer) -> int:
        return self.read_into(buffer).count

    def read(self, size: int = -1) -> bytes:
        self._check_open()
        if size is None or size < 0:
            chunks = []
            while chunk := os.read(self._fd, 1024 * 1024):
                chunks.append(chunk)
            return b''.join(chunks)
        return os.read(self._fd, size)

    def read_at(self, buffer, offset: int) -> ReadResult:
        self._check_open()
        view = memoryview(buffer).cast('B')
        data = os.pread(self._fd, view.nbytes, offset)
        view[:len(data)] = data
        return ReadResult(len(data), eof=len(data) < view.nbytes)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        self._check_open()
        return os.lseek(self._fd, offset, whence)

    def stat(self) -> FileInfo:
        self._check_open()
        return FileInfo.from_stat(self.name, os.fstat(self._fd))

    def readdir(self, count: int = -1) -> list[FileInfo]:
        self._check_open()
        if not stat.S_ISDIR(os.fstat(self._fd).st_mode):
            raise InvalidDirectoryError(self.name)
        with os.scandir(self.path) as it:
            entries = sorted(it, key=lambda e: e.name)
        if count >= 0:
            entries = entries[:count]
        return [_entry_info(e) for e in entries]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        os.close(self._fd)


class HostFileSystem:
    """Passthrough to the operating system.

    With a ``root`` every path is resolved below it and escapes raise
    ``PermissionError``; without one, paths go to the OS untouched.
    """

    def __init__(self, root: str | None = None):
        self.root = str(Path(root).resolve()) if root else None

    def _resolve(self, path: str) -> str:
        if self.root is None:
            return path
        return str(validate_path(path, self.root))

    def open(self, path: str) -> HostHandle:
        return HostHandle(self._resolve(path))

    def stat(self, path: str) -> FileInfo:
        full = self._resolve(path)
        return FileInfo.from_stat(os.path.basename(full.rstrip('/')) or full, os.stat(full))
