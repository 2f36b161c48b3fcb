# Generated at build time from ./static. Do not edit.
from __future__ import annotations

import stat
from datetime import datetime, timezone

from .services.embedded import EmbeddedFile, make_store
from .services.fileinfo import FileInfo

_DIR = stat.S_IFDIR | 0o755
_REG = stat.S_IFREG | 0o644
_MTIME = datetime(2026, 10, 1, 12, 0, 0, tzinfo=timezone.utc)

_INDEX_HTML = (
    b'<!doctype html>\n'
    b'<html lang="en">\n'
    b'<head>\n'
    b'  <meta charset="utf-8">\n'
    b'  <title>embedfs</title>\n'
    b'  <link rel="stylesheet" href="/files/css/site.css">\n'
    b'</head>\n'
    b'<body>\n'
    b'  <h1>embedfs</h1>\n'
    b'  <p>This page is served from memory.</p>\n'
    b'</body>\n'
    b'</html>\n'
)

_SITE_CSS = (
    b'body {\n'
    b'  font-family: sans-serif;\n'
    b'  margin: 2rem auto;\n'
    b'  max-width: 40rem;\n'
    b'}\n'
)

_ROBOTS_TXT = b'User-agent: *\nDisallow:\n'

_info_root = FileInfo('/', 4096, _DIR, _MTIME)
_info_css_dir = FileInfo('css', 4096, _DIR, _MTIME)
_info_index = FileInfo('index.html', len(_INDEX_HTML), _REG, _MTIME)
_info_robots = FileInfo('robots.txt', len(_ROBOTS_TXT), _REG, _MTIME)
_info_site_css = FileInfo('site.css', len(_SITE_CSS), _REG, _MTIME)

ASSETS = make_store(
    {
        '/': EmbeddedFile(_info_root, children=(_info_css_dir, _info_index, _info_robots)),
        '/css': EmbeddedFile(_info_css_dir, children=(_info_site_css,)),
        '/css/site.css': EmbeddedFile(_info_site_css, _SITE_CSS),
        '/index.html': EmbeddedFile(_info_index, _INDEX_HTML),
        '/robots.txt': EmbeddedFile(_info_robots, _ROBOTS_TXT),
    }
)
