import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from hackerchess.api.routes import auth, games, status as status_routes
from hackerchess.core.config import DEV_SESSION_SECRET, Settings, get_settings
from hackerchess.core.context import build_context
from hackerchess.core.errors import AppError, Internal, Unavailable

log = logging.getLogger(__name__)

root = "/api"

_HTTP_ERROR_CODES = {
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _error(code: str, status_code: int, headers: dict | None = None) -> JSONResponse:
    return JSONResponse({"error": code}, status_code=status_code, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if isinstance(exc, Internal):
            log.error(
                "%s %s failed: %s",
                request.method,
                request.url.path,
                exc.detail,
                exc_info=exc.__cause__ or exc,
            )
        headers = None
        if isinstance(exc, Unavailable):
            headers = {"Retry-After": str(exc.retry_after)}
        return _error(exc.code, exc.status_code, headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error("invalid_input", status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error(_HTTP_ERROR_CODES.get(exc.status_code, "http_error"), exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        log.error(
            "Unhandled exception during %s %s", request.method, request.url.path,
            exc_info=exc,
        )
        return _error("internal", status.HTTP_500_INTERNAL_SERVER_ERROR)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            context = await build_context(settings)
        except Exception as e:
            log.error("Startup failed: %s", e)
            raise
        if settings.session_secret.get_secret_value() == DEV_SESSION_SECRET:
            log.warning("SESSION_SECRET not set. Set it for production.")
        app.state.context = context
        context.start_pruning()
        log.info("Ready (mode=%s)", context.store.mode)
        try:
            yield
        finally:
            await context.close()

    app = FastAPI(
        title="hackerchess",
        lifespan=lifespan,
        openapi_url=f"{root}/openapi.json",
        docs_url=f"{root}/docs",
        redoc_url=None,
    )

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        # early reject on the declared length; api.deps counts streamed bodies
        length = request.headers.get("content-length")
        if length is not None and length.isdigit() and int(length) > settings.max_body_bytes:
            return _error("payload_too_large", status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)
        return await call_next(request)

    origins = settings.origins
    if origins == ["*"]:
        # credentials forbid a literal "*", so reflect the caller's origin
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=".*",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)

    app.include_router(status_routes.router, prefix=root, tags=["Status"])
    app.include_router(auth.router, prefix=root, tags=["Auth"])
    app.include_router(games.router, prefix=root, tags=["Games"])
    return app


app = create_app()
