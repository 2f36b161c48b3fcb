from __future__ import annotations

import logging
import mimetypes
import os
import re
from collections.abc import Iterator
from datetime import timezone
from email.utils import format_datetime

from fastapi import APIRouter, Header, HTTPException, Query
from fastapi.responses import StreamingResponse

from ..config import settings
from ..schemas import ApiResponse, FileEntry
from ..services.fileinfo import FileInfo
from ..services.filesystem import File, build_filesystem, iter_chunks, iter_range

logger = logging.getLogger(__name__)

router = APIRouter(tags=['files'])
fs = build_filesystem(settings.fs_backend, settings.host_root)

_RANGE_RE = re.compile(r'^bytes=(\d*)-(\d*)$')


def _key(path: str) -> str:
    return '/' + path


def _join(directory: str, name: str) -> str:
    return directory.rstrip('/') + '/' + name


def _http_date(info: FileInfo) -> str:
    mod_time = info.mod_time
    if mod_time.tzinfo is None:
        mod_time = mod_time.replace(tzinfo=timezone.utc)
    return format_datetime(mod_time.astimezone(timezone.utc), usegmt=True)


def parse_range(header: str | None, size: int) -> tuple[int, int] | None:
    """Return the inclusive ``(start, end)`` of a single byte range.

    ``None`` means serve the whole body: no header, a header we do not parse,
    or a multi-range request. An unsatisfiable range raises 416.
    """
    if not header:
        return None
    match = _RANGE_RE.match(header.strip())
    if not match:
        return None

    first, last = match.groups()
    if not first and not last:
        return None
    if not first:
        suffix = int(last)
        if suffix == 0 or size == 0:
            raise HTTPException(status_code=416, detail='Range not satisfiable')
        return max(size - suffix, 0), size - 1

    start = int(first)
    end = int(last) if last else size - 1
    if start >= size or end < start:
        raise HTTPException(status_code=416, detail='Range not satisfiable')
    return start, min(end, size - 1)


def _closing(handle: File, chunks: Iterator[bytes]) -> Iterator[bytes]:
    try:
        yield from chunks
    finally:
        handle.close()


def _open(key: str) -> File:
    try:
        return fs.open(key)
    except FileNotFoundError:
        logger.debug('Not found: %s', key)
        raise HTTPException(status_code=404, detail='File not found')
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc))


def _list_dir(handle: File, sort_by: str, order: str) -> ApiResponse:
    try:
        items = [FileEntry.from_info(info) for info in handle.readdir(-1)]
    finally:
        handle.close()

    key_map = {'name': lambda i: i.name.lower(), 'size': lambda i: i.size, 'date': lambda i: i.mtime}
    items.sort(key=key_map[sort_by], reverse=order == 'desc')
    return ApiResponse(ok=True, message='Directory listing', data=[i.model_dump() for i in items])


def _content_length(handle: File) -> int:
    length = handle.seek(0, os.SEEK_END)
    handle.seek(0)
    return length


def _serve_file(handle: File, info: FileInfo, range_header: str | None) -> StreamingResponse:
    size = _content_length(handle)
    try:
        byte_range = parse_range(range_header, size)
    except HTTPException:
        logger.debug('Rejected range %r for %s (%d bytes)', range_header, info.name, size)
        raise

    media_type = mimetypes.guess_type(info.name)[0] or 'application/octet-stream'
    headers = {'Accept-Ranges': 'bytes', 'Last-Modified': _http_date(info)}

    if byte_range is None:
        headers['Content-Length'] = str(size)
        body = _closing(handle, iter_chunks(handle, settings.chunk_size))
        return StreamingResponse(body, media_type=media_type, headers=headers)

    start, end = byte_range
    length = end - start + 1
    headers['Content-Length'] = str(length)
    headers['Content-Range'] = f'bytes {start}-{end}/{size}'
    body = _closing(handle, iter_range(handle, start, length, settings.chunk_size))
    return StreamingResponse(body, status_code=206, media_type=media_type, headers=headers)


@router.get('/files/{path:path}')
def get_file(
    path: str,
    sort_by: str = Query(default='name', pattern='^(name|size|date)$'),
    order: str = Query(default='asc', pattern='^(asc|desc)$'),
    range_header: str | None = Header(default=None, alias='Range'),
):
    key = _key(path)
    handle = _open(key)
    try:
        info = handle.stat()
        if info.is_dir:
            children = handle.readdir(-1)
            if not any(child.name == settings.index_name and not child.is_dir for child in children):
                return _list_dir(handle, sort_by, order)
            handle.close()
            handle = _open(_join(key, settings.index_name))
            info = handle.stat()
        return _serve_file(handle, info, range_header)
    except Exception:
        handle.close()
        raise


@router.get('/stat/{path:path}', response_model=FileEntry)
def stat_file(path: str):
    try:
        info = fs.stat(_key(path))
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail='File not found')
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc))
    return FileEntry.from_info(info)
