from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .routers import files

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


@asynccontextmanager
async def lifespan(_app: FastAPI):
    _configure_logging()
    logger.info('Starting %s with %s backend (%s)', settings.app_name, settings.fs_backend, type(files.fs).__name__)
    yield
    logger.info('Stopping %s', settings.app_name)


app = FastAPI(title=settings.app_name, lifespan=lifespan)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception('Unhandled error on %s %s', request.method, request.url.path, exc_info=exc)
    return JSONResponse({'detail': 'Internal server error. Please try again.'}, status_code=500)


@app.get('/healthz')
def healthz():
    return {'ok': True, 'backend': settings.fs_backend}


app.include_router(files.router)
