import logging
import sys
from pythonjsonlogger import jsonlogger

from core.environment import get_log_format, get_log_level, is_production

SERVICE_NAME = "bakery-distribution-api"

# Loggers that flood stdout at INFO with connection and access chatter
QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncpg", "httpx", "uvicorn.access")


class ServiceContextFilter(logging.Filter):
    """Stamps every record with the service name and deployment."""

    def __init__(self):
        super().__init__()
        self.environment = "production" if is_production() else "development"

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = SERVICE_NAME
        record.environment = self.environment
        return True


def build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "text":
        return logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
    return jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(service)s %(environment)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
        rename_fields={"levelname": "level", "asctime": "timestamp"},
    )


def setup_logging():
    """
    Route all logging to stdout, as JSON unless LOG_FORMAT=text.

    Application loggers (services, routers, bakery.requests) follow LOG_LEVEL;
    database drivers and the HTTP access log are held at WARNING.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(get_log_level())

    # uvicorn reload and repeated imports would otherwise stack handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    log_handler = logging.StreamHandler(sys.stdout)
    log_handler.setFormatter(build_formatter(get_log_format()))
    log_handler.addFilter(ServiceContextFilter())
    root_logger.addHandler(log_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info("Logging configured", extra={"log_format": get_log_format()})
