from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from filerelay.api.routers import files as files_router
from filerelay.api.routers import health as health_router
from filerelay.core.config import Settings, get_settings
from filerelay.core.errors import StorageError
from filerelay.core.logging import configure_logging
from filerelay.services.storage import StorageService, build_storage


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app(
    settings: Settings | None = None,
    storage: StorageService | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        debug=settings.debug,
        title="File Relay API",
    )
    app.state.storage = storage or build_storage(settings)

    app.add_exception_handler(StorageError, storage_error_handler)
    app.include_router(files_router.router)
    app.include_router(health_router.router)

    return app


app = create_app()
