from __future__ import annotations

import stat
from datetime import datetime, timezone

import pytest
from fastapi import HTTPException
from fastapi.responses import StreamingResponse

from embedfs.routers import files
from embedfs.schemas import ApiResponse
from embedfs.services.embedded import EmbeddedFile, EmbeddedFileSystem, make_store
from embedfs.services.fileinfo import FileInfo
from embedfs.services.host import HostFileSystem

_MTIME = datetime(2026, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
_DIR = stat.S_IFDIR | 0o755
_REG = stat.S_IFREG | 0o644

_DATA = b'0123456789abcdefghij'
_README = b'read me'


def _build_store():
    data = FileInfo('data.bin', len(_DATA), _REG, _MTIME)
    readme = FileInfo('readme.txt', len(_README), _REG, _MTIME)
    big = FileInfo('big.txt', 30, _REG, datetime(2026, 3, 5, tzinfo=timezone.utc))
    site_index = FileInfo('index.html', 5, _REG, _MTIME)
    docs = FileInfo('docs', 4096, _DIR, _MTIME)
    site = FileInfo('site', 4096, _DIR, _MTIME)
    root = FileInfo('/', 4096, _DIR, _MTIME)
    return make_store(
        {
            '/': EmbeddedFile(root, children=(docs, site, data)),
            '/data.bin': EmbeddedFile(data, _DATA),
            '/docs': EmbeddedFile(docs, children=(readme, big)),
            '/docs/readme.txt': EmbeddedFile(readme, _README),
            '/docs/big.txt': EmbeddedFile(big, b'x' * 30),
            '/site': EmbeddedFile(site, children=(site_index,)),
            '/site/index.html': EmbeddedFile(site_index, b'<h1/>'),
        }
    )


class _RecordingFileSystem:
    def __init__(self, inner):
        self.inner = inner
        self.handles = []

    def open(self, path):
        handle = self.inner.open(path)
        self.handles.append(handle)
        return handle

    def stat(self, path):
        return self.inner.stat(path)


@pytest.fixture
def fs(monkeypatch):
    recording = _RecordingFileSystem(EmbeddedFileSystem(_build_store()))
    monkeypatch.setattr(files, 'fs', recording)
    monkeypatch.setattr(files.settings, 'chunk_size', 512)
    monkeypatch.setattr(files.settings, 'index_name', 'index.html')
    return recording


def _get(path: str, *, sort_by: str = 'name', order: str = 'asc', range_header: str | None = None):
    return files.get_file(path=path, sort_by=sort_by, order=order, range_header=range_header)


async def _body(response: StreamingResponse) -> bytes:
    return b''.join([chunk async for chunk in response.body_iterator])


@pytest.mark.asyncio
async def test_serves_file_with_headers(fs):
    response = _get('data.bin')

    assert isinstance(response, StreamingResponse)
    assert response.status_code == 200
    assert response.headers['content-length'] == str(len(_DATA))
    assert response.headers['accept-ranges'] == 'bytes'
    assert response.headers['last-modified'] == 'Wed, 04 Mar 2026 05:06:07 GMT'
    assert response.media_type == 'application/octet-stream'
    assert await _body(response) == _DATA
    assert fs.handles[-1].closed is True


@pytest.mark.asyncio
async def test_guesses_content_type(fs):
    response = _get('docs/readme.txt')
    assert response.media_type == 'text/plain'
    assert await _body(response) == _README


@pytest.mark.asyncio
async def test_streams_in_configured_chunks(fs, monkeypatch):
    monkeypatch.setattr(files.settings, 'chunk_size', 6)
    response = _get('data.bin')
    chunks = [chunk async for chunk in response.body_iterator]
    assert [len(c) for c in chunks] == [6, 6, 6, 2]


@pytest.mark.asyncio
async def test_range_request_returns_partial_content(fs):
    response = _get('data.bin', range_header='bytes=2-5')

    assert response.status_code == 206
    assert response.headers['content-range'] == f'bytes 2-5/{len(_DATA)}'
    assert response.headers['content-length'] == '4'
    assert await _body(response) == b'2345'
    assert fs.handles[-1].closed is True


@pytest.mark.asyncio
async def test_open_ended_and_suffix_ranges(fs):
    assert await _body(_get('data.bin', range_header='bytes=15-')) == b'fghij'
    assert await _body(_get('data.bin', range_header='bytes=-3')) == b'hij'
    assert await _body(_get('data.bin', range_header='bytes=18-100')) == b'ij'


def test_unsatisfiable_range_is_416_and_closes_handle(fs):
    with pytest.raises(HTTPException) as exc:
        _get('data.bin', range_header='bytes=50-60')
    assert exc.value.status_code == 416
    assert fs.handles[-1].closed is True


@pytest.mark.asyncio
async def test_malformed_range_serves_whole_file(fs):
    response = _get('data.bin', range_header='bytes=1-2,4-5')
    assert response.status_code == 200
    assert await _body(response) == _DATA


@pytest.mark.parametrize(
    ('header', 'size', 'expected'),
    [
        (None, 10, None),
        ('items=0-1', 10, None),
        ('bytes=-', 10, None),
        ('bytes=0-0', 10, (0, 0)),
        ('bytes=3-', 10, (3, 9)),
        ('bytes=-4', 10, (6, 9)),
        ('bytes=-40', 10, (0, 9)),
        ('bytes=5-99', 10, (5, 9)),
    ],
)
def test_parse_range(header, size, expected):
    assert files.parse_range(header, size) == expected


@pytest.mark.parametrize(('header', 'size'), [('bytes=10-', 10), ('bytes=5-2', 10), ('bytes=-0', 10), ('bytes=0-', 0)])
def test_parse_range_rejects_unsatisfiable(header, size):
    with pytest.raises(HTTPException) as exc:
        files.parse_range(header, size)
    assert exc.value.status_code == 416


def test_directory_without_index_is_listed(fs):
    response = _get('docs')

    assert isinstance(response, ApiResponse)
    assert response.ok is True
    assert [item['name'] for item in response.data] == ['big.txt', 'readme.txt']
    assert response.data[0]['is_dir'] is False
    assert response.data[0]['mtime'] == int(datetime(2026, 3, 5, tzinfo=timezone.utc).timestamp())
    assert fs.handles[-1].closed is True


def test_directory_listing_sorting(fs):
    by_size = _get('docs', sort_by='size', order='desc')
    assert [item['name'] for item in by_size.data] == ['big.txt', 'readme.txt']

    by_name = _get('', sort_by='name', order='desc')
    assert [item['name'] for item in by_name.data] == ['site', 'docs', 'data.bin']


@pytest.mark.asyncio
async def test_directory_with_index_serves_index(fs):
    response = _get('site')

    assert isinstance(response, StreamingResponse)
    assert response.media_type == 'text/html'
    assert await _body(response) == b'<h1/>'
    assert all(handle.closed for handle in fs.handles)


def test_missing_path_is_404(fs):
    with pytest.raises(HTTPException) as exc:
        _get('nope.txt')
    assert exc.value.status_code == 404
    assert fs.handles == []


def test_trailing_slash_is_a_different_key(fs):
    with pytest.raises(HTTPException) as exc:
        _get('docs/')
    assert exc.value.status_code == 404


def test_permission_error_is_403(monkeypatch):
    class _Deny:
        def open(self, _path):
            raise PermissionError('Path traversal detected')

        def stat(self, _path):
            raise PermissionError('Path traversal detected')

    monkeypatch.setattr(files, 'fs', _Deny())

    with pytest.raises(HTTPException) as exc:
        _get('../etc/passwd')
    assert exc.value.status_code == 403

    with pytest.raises(HTTPException) as exc:
        files.stat_file(path='../etc/passwd')
    assert exc.value.status_code == 403


def test_stat_route_returns_metadata_without_opening(fs):
    entry = files.stat_file(path='docs/readme.txt')

    assert entry.name == 'readme.txt'
    assert entry.size == len(_README)
    assert entry.is_dir is False
    assert entry.mode == _REG
    assert fs.handles == []


def test_stat_route_missing_is_404(fs):
    with pytest.raises(HTTPException) as exc:
        files.stat_file(path='missing')
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_content_length_follows_content_not_recorded_size(monkeypatch):
    info = FileInfo('short.txt', 1000, _REG, _MTIME)
    store = make_store({'/short.txt': EmbeddedFile(info, b'abc')})
    monkeypatch.setattr(files, 'fs', EmbeddedFileSystem(store))

    response = _get('short.txt')

    assert response.headers['content-length'] == '3'
    assert await _body(response) == b'abc'

    ranged = _get('short.txt', range_header='bytes=1-')
    assert ranged.headers['content-range'] == 'bytes 1-2/3'
    assert await _body(ranged) == b'bc'


def test_failing_listing_closes_handle(monkeypatch):
    class _BrokenDir:
        closed = False

        def stat(self):
            return FileInfo('broken', 0, _DIR, _MTIME)

        def readdir(self, count=-1):
            raise FileNotFoundError('entry vanished')

        def close(self):
            self.closed = True

    broken = _BrokenDir()

    class _FileSystem:
        def open(self, _path):
            return broken

        def stat(self, _path):
            return broken.stat()

    monkeypatch.setattr(files, 'fs', _FileSystem())

    with pytest.raises(FileNotFoundError):
        _get('broken')
    assert broken.closed is True


def test_host_directory_with_dangling_symlink_is_listed(monkeypatch, tmp_path):
    (tmp_path / 'd').mkdir()
    (tmp_path / 'd' / 'real.txt').write_bytes(b'ok')
    (tmp_path / 'd' / 'dangling').symlink_to(tmp_path / 'gone')
    recording = _RecordingFileSystem(HostFileSystem(str(tmp_path)))
    monkeypatch.setattr(files, 'fs', recording)

    response = _get('d')

    assert [item['name'] for item in response.data] == ['dangling', 'real.txt']
    assert all(handle.closed for handle in recording.handles)
