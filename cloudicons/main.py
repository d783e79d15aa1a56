"""CloudIcons API — FastAPI application entry point.

Hosts the IconService for its lifetime and maps its outcomes onto HTTP.
"""

import hashlib
import logging
import re
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, Response

from cloudicons.config import Settings, settings
from cloudicons.errors import DataUnavailableError, IconNotFoundError
from cloudicons.schemas import IconQuery
from cloudicons.services.container import ServiceContainer
from cloudicons.services.resolver import IconService

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger("cloudicons")

_EXTENSION_RE = re.compile(r"\.[^/.]+$")


# ═══════════════ LIFESPAN ═══════════════

def create_app(app_settings: Settings | None = None) -> FastAPI:
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("CloudIcons API starting | cache_enabled=%s", app_settings.cache_enabled)
        container = ServiceContainer(app_settings)
        await container.start()
        app.state.container = container
        app.state.icon_service = container.icon_service

        yield

        await container.stop()
        logger.info("CloudIcons API shutting down")

    app = FastAPI(
        title="CloudIcons API",
        description="Cloud provider icon catalog",
        version="1.0.0",
        lifespan=lifespan,
    )
    _register(app, app_settings)
    return app


def _service(request: Request) -> IconService:
    return request.app.state.icon_service


def _etag(body: bytes) -> str:
    return '"' + hashlib.md5(body).hexdigest()[:16] + '"'


def _conditional(request: Request, response: Response) -> Response:
    """Tag a successful response; 304 when the client already holds it."""
    etag = _etag(response.body)
    if request.headers.get("if-none-match") == etag:
        logger.debug("ETag match, returning 304 | path=%s | etag=%s", request.url.path, etag)
        return Response(status_code=304, headers={"ETag": etag})
    response.headers["ETag"] = etag
    return response


# ═══════════════ ENDPOINTS ═══════════════

def _register(app: FastAPI, app_settings: Settings) -> None:

    @app.exception_handler(IconNotFoundError)
    async def not_found(request: Request, exc: IconNotFoundError):
        return JSONResponse(status_code=404, content={"error": "Icon not found"})

    @app.exception_handler(DataUnavailableError)
    async def unavailable(request: Request, exc: DataUnavailableError):
        logger.error("Catalog unavailable | path=%s | %s", request.url.path, str(exc)[:200])
        return JSONResponse(status_code=503, content={"error": "Icon catalog unavailable"})

    @app.get("/health")
    async def health(request: Request):
        status = await _service(request).health()
        code = 503 if status.status == "unavailable" else 200
        return JSONResponse(status_code=code, content=status.model_dump())

    @app.get("/api/cloud-providers")
    async def providers(request: Request):
        result = await _service(request).list_providers()
        return _conditional(request, JSONResponse(content=result))

    @app.get("/api/tags")
    async def tags(request: Request):
        result = await _service(request).list_tags()
        return _conditional(request, JSONResponse(content=result))

    @app.get("/api/{provider}/icons")
    async def list_icons(
        request: Request,
        provider: str,
        search: str | None = None,
        tags: str | None = None,
        page: int = Query(1, ge=1),
        page_size: int = Query(app_settings.default_page_size, ge=1, le=1000, alias="pageSize"),
        size: int = Query(app_settings.default_listing_icon_size, ge=16, le=512),
    ):
        query = IconQuery(provider=provider, search=search, tags=tags, page=page, page_size=page_size)
        result = await _service(request).list_icons_with_content(query, size)
        logger.info(
            "Returning icons | provider=%s | count=%d | total=%d",
            provider, len(result.data), result.total,
        )
        return _conditional(request, JSONResponse(content=result.model_dump(by_alias=True)))

    @app.get("/api/{provider}/icon/{icon_name}")
    async def get_icon(
        request: Request,
        provider: str,
        icon_name: str,
        size: int = Query(app_settings.default_icon_size, ge=16, le=512),
        format: str = Query("json", pattern="^(json|svg)$"),
    ):
        icon_id = _EXTENSION_RE.sub("", icon_name)
        resolved = await _service(request).resolve_content(provider, icon_id, size)

        if format == "json":
            return _conditional(request, JSONResponse(content=resolved.model_dump(by_alias=True)))

        if not resolved.content:
            return JSONResponse(status_code=404, content={"error": "SVG file not found"})
        return _conditional(request, Response(content=resolved.content, media_type="image/svg+xml"))


app = create_app()
