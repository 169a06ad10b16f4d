# roster/main.py
import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import config
from .catalog import CatalogService, build_catalog_router
from .catalog.kinds import KINDS
from .models import ErrorBody
from .storage import FileBlobStore, JsonDocumentStore


logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": str(config.CORS_MAX_AGE),
}


def create_app(data_dir: Optional[Path] = None) -> FastAPI:
    """Build the API with one catalog per kind, each with its own stores.

    Layout under ``data_dir``::

        <data_dir>/<kind>/documents/<kind>.json
        <data_dir>/<kind>/blobs/<kind>/...
    """
    root = Path(data_dir) if data_dir is not None else config.DATA_DIR

    app = FastAPI(
        title="Roster catalog API",
        description=(
            "CRUD endpoints for the artists and actors catalogs. Each catalog "
            "is a single JSON document; photos live in a blob store."
        ),
        version="1.0.0",
    )

    app.state.services = {}
    for kind in KINDS:
        service = CatalogService(
            kind,
            documents=JsonDocumentStore(root / kind.name / "documents"),
            blobs=FileBlobStore(root / kind.name / "blobs"),
        )
        app.state.services[kind.name] = service
        app.include_router(build_catalog_router(service))

    @app.middleware("http")
    async def cross_origin(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorBody(error=str(exc.detail)).model_dump(),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content=ErrorBody(error=str(exc)).model_dump())

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=ErrorBody(error=f"Internal Server Error: {exc}").model_dump(),
            headers=CORS_HEADERS,
        )

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    logger.info("Catalog data stored under %s", root.resolve())
    return app


app = create_app()
