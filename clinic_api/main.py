from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from clinic_api.core.config import Settings, settings as default_settings
from clinic_api.core.cors import NoContentCORSMiddleware
from clinic_api.core.errors import AppError
from clinic_api.api import auth, bookings
from clinic_api.api.deps import get_connection_manager
from clinic_api.core.logger import setup_logging, logger
from clinic_api.services.auth_service import CredentialVerifier
from clinic_api.services.booking_service import BookingService
from clinic_api.services.booking_store import BookingStore
from clinic_api.services.db_service import ConnectionManager
from clinic_api.services.notification_service import NotificationDispatcher
from contextlib import asynccontextmanager
from datetime import datetime

setup_logging()

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info(f"🚀 Starting {settings.PROJECT_NAME} ({settings.ENVIRONMENT})")
        yield
        # Shutdown
        logger.info("🛑 Shutting down backend")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="0.1.0",
        lifespan=lifespan
    )

    # One of each per process, shared by all requests
    connection_manager = ConnectionManager(settings)
    app.state.settings = settings
    app.state.connection_manager = connection_manager
    app.state.credential_verifier = CredentialVerifier(settings)
    app.state.booking_service = BookingService(
        connection=connection_manager,
        store=BookingStore(connection_manager),
        notifier=NotificationDispatcher(settings),
    )

    app.add_middleware(
        NoContentCORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS", "PUT", "DELETE", "PATCH"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        message = exc.message
        if exc.status_code >= 500:
            logger.error(f"🔥 {request.method} {request.url.path} failed: {exc.message}")
            if settings.is_production:
                message = "Internal server error"
        return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    # Global Exception Handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"🔥 UNHANDLED ERROR: {exc}")
        message = "Internal server error" if settings.is_production else str(exc) or "Internal server error"
        return JSONResponse(status_code=500, content={"error": message})

    app.include_router(bookings.router, tags=["Bookings"])
    app.include_router(auth.router, tags=["Auth"])

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "environment": settings.ENVIRONMENT, "timestamp": datetime.now().isoformat()}

    @app.get("/db-check")
    async def db_check(connection: ConnectionManager = Depends(get_connection_manager)):
        try:
            await connection.ensure_connected()
        except AppError as e:
            logger.error(f"❌ DB-check failed: {e.message}")
            return JSONResponse(status_code=503, content={"ok": False, "error": e.message})
        return {"ok": True, "message": "Connected to Supabase"}

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("clinic_api.main:app", host="0.0.0.0", port=default_settings.PORT, reload=True)
