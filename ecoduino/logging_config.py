"""
Structured logging configuration using structlog
Provides JSON-formatted logs with request context for production observability
"""
import logging
import structlog
from typing import Any, Callable, Optional

from .config import Settings, settings as default_settings


def app_context_processor(config: Settings) -> Callable:
    """Processor stamping every entry with the app name, version and environment of `config`"""

    def add_app_context(logger: Any, method_name: str, event_dict: dict) -> dict:
        event_dict['app'] = 'ecoduino-api'
        event_dict['version'] = config.app_version
        event_dict['environment'] = config.environment
        return event_dict

    return add_app_context


def drop_color_message_key(logger: Any, method_name: str, event_dict: dict) -> dict:
    """
    Remove the 'color_message' key from the event dict.
    Uvicorn adds this key for colored output, but we don't need it in JSON logs.
    """
    event_dict.pop('color_message', None)
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    config: Optional[Settings] = None
):
    """
    Configure structured logging for the application

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output JSON logs. If False, use human-readable format
        config: Settings whose version/environment/debug apply (module settings if omitted)

    Returns:
        Configured structlog logger

    Usage:
        logger = configure_logging(settings.log_level, settings.json_logs, settings)
        logger.info("device_provisioned", greenhouse_id=12, user_id=7)
    """
    config = config or default_settings

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        app_context_processor(config),
        drop_color_message_key,
    ]

    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[structlog.stdlib.filter_by_level] + shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level.upper())

    # Uvicorn records go through the root handler; access lines only when debugging
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True
    logging.getLogger("uvicorn.access").setLevel(
        logging.INFO if config.debug else logging.WARNING
    )

    # SQL echo goes through the sqlalchemy.engine logger
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if config.debug else logging.WARNING
    )

    return structlog.get_logger()


def get_logger(name: Optional[str] = None):
    """
    Get a logger instance with optional name

    Usage:
        logger = get_logger(__name__)
        logger.info("telemetry_ingested", greenhouse_id=3)
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()
