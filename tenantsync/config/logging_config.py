# tenantsync/config/logging_config.py
# =============================================================================
# File: tenantsync/config/logging_config.py
# Description: Logging configuration using the Rich framework, with JSON
#              output for production and a plain fallback handler
# =============================================================================

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean value from environment variable."""
    value = os.getenv(key, '').lower()
    return value in ('true', '1', 'yes', 'on') if value else default


def get_env_int(key: str, default: int) -> int:
    """Get integer value from environment variable."""
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


# Muted theme for console output
TENANTSYNC_THEME = Theme({
    "debug": "magenta dim",
    "info": "green",
    "warning": "dark_goldenrod",
    "error": "red",
    "critical": "bold red",
    "timestamp": "grey70",
    "logger_name": "grey35",
    "message": "grey85",
    "dim": "bright_black",
})

PLAIN_FORMAT = "[%(asctime)s] [%(levelname)-8s] [%(name)-40s] %(message)s"
PLAIN_DATEFMT = "%Y-%m-%d %H:%M:%S"


class ProductionFormatter(logging.Formatter):
    """JSON formatter for production environments"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_obj = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Correlation fields attached through `extra=`
        for attr in ("tenant_id", "user_id", "event_kind", "request_id"):
            if hasattr(record, attr):
                log_obj[attr] = getattr(record, attr)

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


def get_logger_level_from_env(logger_name: str, default_level: int) -> int:
    """Get logger level from environment variable.

    e.g. "tenantsync.user_sync.synchronizer" -> "LOGLEVEL_TENANTSYNC_USER_SYNC_SYNCHRONIZER"
    """
    env_name = f"LOGLEVEL_{logger_name.replace('.', '_').upper()}"

    level_str = os.getenv(env_name, '').upper()
    if level_str == 'WARN':
        level_str = 'WARNING'
    return logging.getLevelNamesMapping().get(level_str, default_level)


def setup_logging(
        service_name: str = "tenantsync",
        log_level: Optional[str] = None,
        log_file: Optional[str] = None,
        enable_json: Optional[bool] = None,
        rich_tracebacks: bool = True,
) -> None:
    """
    Configure process-wide logging.

    Args:
        service_name: Name of the service (e.g., "api", "init-db")
        log_level: Override log level (defaults to LOG_LEVEL env var)
        log_file: Optional log file path (defaults to LOG_FILE env var)
        enable_json: Enable JSON formatting for production
        rich_tracebacks: Enable rich tracebacks (pretty exceptions)
    """
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("LOG_FILE")

    if enable_json is None:
        enable_json = get_env_bool('LOG_JSON_FORMAT', False)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    use_rich = not enable_json and (sys.stdout.isatty() or get_env_bool("FORCE_COLOR", False))

    if use_rich:
        console = Console(
            theme=TENANTSYNC_THEME,
            force_terminal=get_env_bool("FORCE_COLOR", False),
            width=get_env_int('LOG_CONSOLE_WIDTH', 0) or None,
        )
        rich_handler = RichHandler(
            console=console,
            rich_tracebacks=rich_tracebacks,
            show_path=False,
            markup=False,
            log_time_format="[%X]",
        )
        root_logger.addHandler(rich_handler)

    elif enable_json:
        json_handler = logging.StreamHandler(sys.stdout)
        json_handler.setFormatter(ProductionFormatter())
        root_logger.addHandler(json_handler)

    else:
        plain_handler = logging.StreamHandler(sys.stdout)
        plain_handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=PLAIN_DATEFMT))
        root_logger.addHandler(plain_handler)

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=get_env_int('LOG_MAX_SIZE_MB', 100) * 1024 * 1024,
            backupCount=get_env_int('LOG_BACKUP_COUNT', 5),
            encoding=os.getenv('LOG_FILE_ENCODING', 'utf-8'),
        )
        # Always use plain formatter for files
        file_handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=PLAIN_DATEFMT))
        root_logger.addHandler(file_handler)

    default_noise_config = {
        "asyncio": logging.WARNING,
        "asyncpg": logging.WARNING,
        "redis": logging.WARNING,
        "httpx": logging.WARNING,
        "httpcore": logging.WARNING,
        "uvicorn.access": logging.WARNING,
        "granian.access": logging.WARNING,
        "tenantsync.circuit_breaker": logging.INFO,
        "tenantsync.retry": logging.WARNING,
        "tenantsync.pg_client": logging.INFO,
        "tenantsync.redis_client": logging.INFO,
        "tenantsync.user_sync": logging.INFO,
    }

    for logger_name, default_level in default_noise_config.items():
        logging.getLogger(logger_name).setLevel(get_logger_level_from_env(logger_name, default_level))

    logging.getLogger(f"{service_name}.startup").info(f"Logging configured for {service_name} service")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
