"""
FastAPI application entry point for the mirror API.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mirror_api.cache import TtlCache
from mirror_api.config import Settings, get_settings
from mirror_api.routes import api_router, router
from shared.errors import NotSynced, StoreFault

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"status": "error", "error": message}
    )


async def _not_synced_handler(request: Request, exc: NotSynced) -> JSONResponse:
    return _error(404, str(exc))


async def _store_fault_handler(request: Request, exc: StoreFault) -> JSONResponse:
    logger.error("Store fault serving %s: %s", request.url.path, exc)
    return _error(500, "Internal server error")


async def _unhandled_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    logger.exception("Unhandled error serving %s", request.url.path)
    return _error(500, "Internal server error")


async def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and message == "Not Found":
        message = "Not found"
    return _error(exc.status_code, message)


def create_app(
    settings: Optional[Settings] = None, *, cache: Optional[TtlCache] = None
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="PS99 API Mirror", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if cache is None:
        cache = TtlCache(
            settings.cache_ttls(), default_ttl=settings.cache_ttl_default_seconds
        )
    app.state.cache = cache
    app.include_router(api_router, prefix=settings.api_prefix)
    app.include_router(router)
    app.add_exception_handler(NotSynced, _not_synced_handler)
    app.add_exception_handler(StoreFault, _store_fault_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
