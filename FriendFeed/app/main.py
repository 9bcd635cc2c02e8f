from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import register_routers
from .cache import coordinator
from .core.config import get_settings
from .core.logging import configure_logging
from .database import Base, engine
from .errors import Conflict, InvalidOperation, NotFound, ServiceError

logger = logging.getLogger("friendfeed")

ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidOperation: status.HTTP_400_BAD_REQUEST,
    Conflict: status.HTTP_400_BAD_REQUEST,
}

configure_logging()
Base.metadata.create_all(bind=engine)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, type(exc).__name__, exc.message)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(exc.to_dict()))


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.APP_NAME,
        description="Users, bidirectional friendships, posts and cached friend timelines.",
        version=settings.VERSION,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )
    app.add_exception_handler(ServiceError, service_error_handler)

    register_routers(app)

    @app.get("/", tags=["Health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/cache/stats", tags=["Health"])
    def cache_stats() -> dict[str, dict[str, int]]:
        return coordinator.stats()

    return app


app = create_app()
