import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from api_auth import __version__
from api_auth.base_microservice import BaseMicroservice, ServiceContext, Settings
from api_auth.auth.errors import AuthFailure, InvalidField, error_response
from api_auth.auth.router import router as auth_router
from api_auth.users.router import router as users_router

base_service = BaseMicroservice("api_auth.main")


def create_app(settings: Optional[Settings] = None, context: Optional[ServiceContext] = None) -> FastAPI:
    """
    Build the FastAPI application around an explicit ServiceContext.

    Args:
        settings: Configuration, read from the environment when omitted
        context: Prebuilt context (tests pass one bound to their own database)

    Returns:
        Configured FastAPI app
    """
    if context is None:
        context = ServiceContext(settings or Settings.from_env())
    settings = context.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for FastAPI.
        Creates missing tables on startup and releases the pool on shutdown.
        """
        base_service.log_event("service.startup", {"service": "main"})
        try:
            await context.create_tables()
        except Exception as e:
            base_service.log_error(e, context="Database initialisation")
            raise
        yield
        base_service.log_event("service.shutdown", {"service": "main"})
        await context.dispose()

    app = FastAPI(
        title="api-auth",
        description="User registration, login and cookie based JWT sessions",
        version=__version__,
        lifespan=lifespan
    )
    app.state.context = context

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        base_service.logger.info(
            f"{request.method} {request.url.path} {response.status_code} {duration_ms:.1f}ms"
        )
        return response

    @app.exception_handler(AuthFailure)
    async def auth_failure_handler(request: Request, exc: AuthFailure):
        return error_response(exc.error)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        # Report the first offending field the way the handlers do
        errors = exc.errors()
        error = errors[0] if errors else {"loc": ("body",), "msg": "Invalid request"}
        names = [part for part in error.get("loc", ()) if isinstance(part, str)]
        field = names[-1] if names else "body"
        return error_response(InvalidField(field, error.get("msg", "Invalid value")))

    # Include routers with prefixes
    app.include_router(auth_router, prefix=f"{settings.api_prefix}/auth", tags=["auth"])
    app.include_router(users_router, prefix=f"{settings.api_prefix}/users", tags=["users"])

    @app.get("/health", tags=["health"])
    async def health_check():
        """Overall system health check."""
        return base_service.status_response(
            message="System health",
            data={
                "version": __version__,
                "services": {
                    "auth": "online",
                    "users": "online"
                }
            }
        )

    return app


# For running directly with uvicorn
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api_auth.main:create_app", factory=True, host="0.0.0.0", port=8000, reload=True)
