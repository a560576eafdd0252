"""
EcoDuino greenhouse backend - FastAPI application

Devices push telemetry and poll actuator state with their token; users
provision greenhouses, read their data and flip actuators.
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, settings as default_settings
from .database import Database
from .dependencies import build_services
from .exceptions import EcoduinoException
from .logging_config import configure_logging, get_logger
from .middleware import RequestTracingMiddleware, get_request_id
from .routers import (
    auth_router,
    devices_router,
    greenhouses_router,
    health_router,
    metrics_router,
)

logger = get_logger(__name__)


def create_app(config: Optional[Settings] = None) -> FastAPI:
    """Build the application; tests pass their own Settings"""
    config = config or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the database handle, wire services, dispose on shutdown"""
        configure_logging(config.log_level, json_logs=config.json_logs, config=config)
        logger.info("application_starting", app_name=config.app_name, version=config.app_version)

        db = Database(config=config)
        await db.initialize()
        if config.create_tables_on_startup:
            await db.create_all()

        app.state.db = db
        app.state.services = build_services(db, config)
        logger.info("application_ready", database=db.get_stats())

        yield

        logger.info("application_stopping")
        await db.close()
        logger.info("application_stopped")

    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        description="Greenhouse provisioning, telemetry and actuator control",
        lifespan=lifespan
    )
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTracingMiddleware)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(greenhouses_router)
    app.include_router(devices_router)
    if config.prometheus_enabled:
        app.include_router(metrics_router)

    register_exception_handlers(app)
    return app


def register_exception_handlers(app: FastAPI):
    """Map the exception taxonomy onto HTTP responses"""

    @app.exception_handler(EcoduinoException)
    async def ecoduino_exception_handler(request: Request, exc: EcoduinoException):
        if exc.status_code >= 500:
            logger.error("internal_error", error=exc.error_code, message=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "error": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": [
                    {"field": ".".join(str(part) for part in err.get("loc", ())), "error": err.get("msg")}
                    for err in exc.errors()
                ]
            }
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_exception",
            request_id=get_request_id(),
            error_type=type(exc).__name__,
            exc_info=exc
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "INTERNAL_SERVER_ERROR",
                "message": "An unexpected error occurred"
            }
        )


app = create_app()


def run():
    """Console entry point"""
    import uvicorn

    uvicorn.run(
        "ecoduino.main:app",
        host=default_settings.api_host,
        port=default_settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
