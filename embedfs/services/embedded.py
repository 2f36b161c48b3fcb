from __future__ import annotations

import errno
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .errors import ClosedFileError, InvalidCountError, InvalidDirectoryError, InvalidOffsetError, InvalidWhenceError
from .fileinfo import FileInfo, ReadResult


@dataclass(frozen=True)
class EmbeddedFile:
    info: FileInfo
    content: bytes = b''
    children: tuple[FileInfo, ...] = field(default_factory=tuple)


def make_store(entries: Mapping[str, EmbeddedFile]) -> Mapping[str, EmbeddedFile]:
    return MappingProxyType(dict(entries))


def _copy_into(buffer, content: bytes, start: int) -> int:
    view = memoryview(buffer).cast('B')
    n = min(len(view), len(content) - start)
    view[:n] = memoryview(content)[start:start + n]
    return n


class EmbeddedHandle:
    """Read cursor over one embedded record.

    The record is shared with the store and every other handle opened on the
    same path; only ``offset`` and ``closed`` belong to this handle, and they
    are not synchronized.
    """

    def __init__(self, record: EmbeddedFile):
        self._info = record.info
        self._content = record.content
        self._children = record.children
        self._offset = 0
        self._closed = False

    def __enter__(self) -> EmbeddedHandle:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        state = 'closed' if self._closed else f'offset={self._offset}'
        return f'<EmbeddedHandle {self._info.name!r} {state}>'

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def name(self) -> str:
        return self._info.name

    def _check_open(self) -> None:
        if self._closed:
            raise ClosedFileError()

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        self._check_open()
        return self._offset

    def read_into(self, buffer) -> ReadResult:
        self._check_open()
        if self._offset >= len(self._content):
            return ReadResult(0, eof=True)
        n = _copy_into(buffer, self._content, self._offset)
        self._offset += n
        return ReadResult(n)

    def readinto(self, buffer) -> int:
        return self.read_into(buffer).count

    def read(self, size: int = -1) -> bytes:
        self._check_open()
        if self._offset >= len(self._content):
            return b''
        end = len(self._content) if size is None or size < 0 else self._offset + size
        data = self._content[self._offset:end]
        self._offset += len(data)
        return data

    def read_at(self, buffer, offset: int) -> ReadResult:
        self._check_open()
        if offset < 0:
            raise InvalidOffsetError(offset)
        if offset >= len(self._content):
            return ReadResult(0, eof=True)
        n = _copy_into(buffer, self._content, offset)
        return ReadResult(n, eof=n < memoryview(buffer).nbytes)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        self._check_open()
        if whence == os.SEEK_SET:
            target = offset
        elif whence == os.SEEK_CUR:
            target = self._offset + offset
        elif whence == os.SEEK_END:
            target = len(self._content) + offset
        else:
            raise InvalidWhenceError(whence)

        if target < 0:
            raise InvalidOffsetError(target)
        self._offset = target
        return target

    def stat(self) -> FileInfo:
        self._check_open()
        return self._info

    def readdir(self, count: int = -1) -> list[FileInfo]:
        self._check_open()
        if not self._info.is_dir:
            raise InvalidDirectoryError(self._info.name)
        if count < 0:
            return list(self._children)
        # Asking for more entries than exist is an error, not a short listing.
        if count > len(self._children):
            raise InvalidCountError(count, len(self._children))
        return list(self._children[:count])

    def close(self) -> None:
        self._closed = True


class EmbeddedFileSystem:
    def __init__(self, store: Mapping[str, EmbeddedFile]):
        self._store = store

    def __contains__(self, path: str) -> bool:
        return path in self._store

    def __len__(self) -> int:
        return len(self._store)

    def _lookup(self, path: str) -> EmbeddedFile:
        record = self._store.get(path)
        if record is None:
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)
        return record

    def open(self, path: str) -> EmbeddedHandle:
        return EmbeddedHandle(self._lookup(path))

    def stat(self, path: str) -> FileInfo:
        return self._lookup(path).info
