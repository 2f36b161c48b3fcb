from __future__ import annotations

import os
from collections.abc import Iterator
from typing import Protocol

from .embedded import EmbeddedFileSystem
from .fileinfo import FileInfo, ReadResult
from .host import HostFileSystem


class File(Protocol):
    @property
    def closed(self) -> bool:
        ...

    def read_into(self, buffer) -> ReadResult:
        ...

    def read(self, size: int = -1) -> bytes:
        ...

    def read_at(self, buffer, offset: int) -> ReadResult:
        ...

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        ...

    def stat(self) -> FileInfo:
        ...

    def readdir(self, count: int = -1) -> list[FileInfo]:
        ...

    def close(self) -> None:
        ...


class FileSystem(Protocol):
    def open(self, path: str) -> File:
        ...

    def stat(self, path: str) -> FileInfo:
        ...


def build_filesystem(backend: str, host_root: str | None = None) -> FileSystem:
    if backend == 'embedded':
        from ..assets import ASSETS

        return EmbeddedFileSystem(ASSETS)
    if backend == 'host':
        return HostFileSystem(host_root)
    raise ValueError(f'Unknown filesystem backend: {backend}')


def iter_chunks(handle: File, chunk_size: int) -> Iterator[bytes]:
    buffer = bytearray(chunk_size)
    while True:
        result = handle.read_into(buffer)
        if result.count:
            yield bytes(buffer[:result.count])
        if result.eof:
            return


def iter_range(handle: File, start: int, length: int, chunk_size: int) -> Iterator[bytes]:
    """Yield ``length`` bytes from ``start`` using positioned reads only."""
    offset = start
    remaining = length
    while remaining > 0:
        buffer = bytearray(min(chunk_size, remaining))
        result = handle.read_at(buffer, offset)
        if result.count:
            yield bytes(buffer[:result.count])
            offset += result.count
            remaining -= result.count
        if result.eof:
            return
