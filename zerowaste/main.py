import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from zerowaste.config import Settings, get_settings
from zerowaste.db.db import Database
from zerowaste.errors import ZeroWasteError
from zerowaste.routers import auth, donations, upload, users
from zerowaste.schemas import ErrorResponse


logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, code: str, details=None) -> JSONResponse:
    body = ErrorResponse(error=message, code=code, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True))


HTTP_ERROR_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ZeroWasteError)
    async def handle_domain_error(request: Request, exc: ZeroWasteError):
        logger.warning("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.code)
        return _error(exc.status_code, exc.message, exc.code, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        code = HTTP_ERROR_CODES.get(exc.status_code, "http_error")
        return _error(exc.status_code, str(exc.detail), code)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(part) for part in err["loc"][1:]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return _error(400, "Validation failed", "validation_error", details)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal server error", "internal_error")


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database or Database(settings.DATABASE_URL, echo=settings.DB_ECHO)
        db.create_db_and_tables()
        app.state.db = db
        try:
            yield
        finally:
            # a database handed in by the caller stays the caller's to dispose
            if database is None:
                db.dispose()

    app = FastAPI(title="ZeroWaste", lifespan=lifespan)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Register routers
    app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
    app.include_router(donations.router, prefix="/donations", tags=["Donations"])
    app.include_router(users.router, prefix="/users", tags=["Users"])
    app.include_router(upload.router, prefix="/upload", tags=["Upload"])

    @app.get("/")
    def root():
        return {"success": True, "status": "ok"}

    return app


app = create_app()
