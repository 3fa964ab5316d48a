from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from app.core import config
from app.core.database.engine import init_db
from app.core.errors import OperationError, Unauthenticated
from app.core.rate_limit import FixedWindowRateLimiter, limiter
from app.features.documents.routes import router as document_router
from app.features.documents.service import http_status_for, error_payload
from app.features.organizations.routes import router as department_router
from app.features.permissions.routes import router as permission_router
from app.utils import get_logger


log = get_logger(__name__)


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.app.features."), timing=timing, tags=tags))


async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = dict()
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        key = error["loc"][-1]
        if key == "__root__":
            key = "root"
        errors[key] = error["msg"]
    log.info("Request validation error %s", errors)
    return JSONResponse(status_code=400, content=jsonable_encoder(errors))


def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return JSONResponse({"detail": "You are going too fast"}, status_code=429)


async def operation_error_handler(_request: Request, exc: OperationError) -> Response:
    status_code = http_status_for(exc)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(error_payload(exc), status_code=status_code, headers=headers)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> Response:
    log.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"detail": "Internal server error"}, status_code=500)


def create_app(rate_limiter: FixedWindowRateLimiter | None = None) -> FastAPI:
    log.info("Initializing server")
    app = FastAPI(
        title="A3 Documents Backend",
        description="Organization-scoped A3 documents with department permissions and audit trail",
        version="0.1.0",
        docs_url="/docs" if config.ENABLE_DOCS else None,
        redoc_url="/redoc" if config.ENABLE_DOCS else None,
        openapi_url="/openapi.json" if config.ENABLE_DOCS else None
    )
    app.state.limiter = limiter
    app.state.document_rate_limiter = rate_limiter or FixedWindowRateLimiter()

    app.add_middleware(TimingMiddleware, client=PrintTimings(), metric_namer=StarletteScopeToName("main", app))

    if config.ENABLE_DOCS:
        log.warning("Docs enabled")
    if config.ALLOW_ORIGIN:
        log.warning("Setting allow origin to %s", config.ALLOW_ORIGIN)
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[config.ALLOW_ORIGIN],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(OperationError, operation_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    @app.on_event("startup")
    async def startup():
        """Initialize database on application startup."""
        log.info("Initializing database...")
        await init_db()
        log.info("Database initialized successfully")

    @app.get("/")
    async def root():
        """Root endpoint - API health check."""
        return {
            "message": "A3 Documents Backend API",
            "version": "0.1.0",
            "status": "online",
            "docs": "/docs" if config.ENABLE_DOCS else None,
            "authentication": {
                "info": "Protected endpoints require Bearer token in Authorization header",
                "protected_endpoints": ["/documents/*", "/departments/*", "/permissions/*"],
                "public_endpoints": ["/", "/health"]
            },
            "features": {
                "documents": "A3 documents with sections, archive and PDF export",
                "departments": "Department memberships of the current user",
                "permissions": "Organization audit trail (owners/admins)"
            }
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    app.include_router(document_router, prefix="/documents", tags=["documents"])
    app.include_router(department_router, prefix="/departments", tags=["departments"])
    app.include_router(permission_router, prefix="/permissions", tags=["permissions"])

    return app


app = create_app()
