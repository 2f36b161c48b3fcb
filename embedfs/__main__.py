from __future__ import annotations

import uvicorn

from .config import settings


def main() -> None:
    uvicorn.run('embedfs.main:app', host=settings.app_host, port=settings.app_port, log_level=settings.log_level)


if __name__ == '__main__':
    main()
