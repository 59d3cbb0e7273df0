from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, cast

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from apicus import __version__
from apicus.api.errors import (
    catalog_error_handler,
    internal_error_handler,
    validation_error_handler,
)
from apicus.api.middleware import BodySizeLimitMiddleware, RequestIdMiddleware
from apicus.api.routes import router
from apicus.catalog import CatalogRepository
from apicus.constants import CATALOG_ROOT_ENV, MAX_REQUEST_BODY_BYTES
from apicus.engine import CatalogError, StackEngine
from apicus.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and graceful shutdown."""
    logger.info("startup", extra={"event": "startup", "version": __version__})
    yield
    logger.info("shutdown", extra={"event": "shutdown"})


def create_app(catalog_root: Path | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance."""
    configure_logging()

    if catalog_root is None and os.environ.get(CATALOG_ROOT_ENV):
        catalog_root = Path(os.environ[CATALOG_ROOT_ENV])

    app = FastAPI(
        title="Apicus Stack Cost API",
        version=__version__,
        lifespan=lifespan,
    )

    repository = CatalogRepository(root_dir=catalog_root)
    engine = StackEngine(repository=repository, engine_version=__version__)

    app.state.repository = repository
    app.state.engine = engine

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        BodySizeLimitMiddleware,
        max_body_bytes=MAX_REQUEST_BODY_BYTES,
    )
    app.include_router(router)

    app.add_exception_handler(CatalogError, cast(Any, catalog_error_handler))
    app.add_exception_handler(
        RequestValidationError,
        cast(Any, validation_error_handler),
    )
    app.add_exception_handler(Exception, cast(Any, internal_error_handler))

    return app


app = create_app()
