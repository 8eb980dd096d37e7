"""
Logging Configuration and Utilities

Structured logging on top of the standard library logging tree:

* structlog processors add request context and redact secrets;
* python-json-logger renders JSON lines when ``LOG_FORMAT=json``;
* structlog's console renderer is used when ``LOG_FORMAT=console``.

Application code calls ``get_logger(__name__)`` and logs with
``extra={...}`` fields.
"""

import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from pythonjsonlogger import jsonlogger

from hostel_app.config.settings import Settings

# Context variables for request tracking
request_id: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
user_id: ContextVar[Optional[str]] = ContextVar('user_id', default=None)

SERVICE_NAME = 'hostel-booking'

_environment = 'development'

# Attributes owned by logging.LogRecord; extra keys with these names are renamed
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({})).keys()) | {'message', 'asctime'}


class RequestContextProcessor:
    """Add request context to log records"""

    def __call__(self, logger, method_name, event_dict):
        req_id = request_id.get()
        if req_id:
            event_dict['request_id'] = req_id

        uid = user_id.get()
        if uid:
            event_dict['user_id'] = uid

        event_dict.setdefault('timestamp', datetime.now(timezone.utc).isoformat())
        event_dict['service'] = SERVICE_NAME
        event_dict['environment'] = _environment

        return event_dict


class SecurityLogProcessor:
    """Mask secrets and mark security events"""

    sensitive_keys = (
        'password', 'token', 'secret', 'signature', 'credentials',
        'authorization', 'cookie', 'key_secret',
    )

    def __call__(self, logger, method_name, event_dict):
        if any(keyword in str(event_dict.get('event', event_dict.get('message', ''))).lower()
               for keyword in ['auth', 'permission', 'signature', 'forbidden']):
            event_dict['security_event'] = True

        self._sanitize_event_dict(event_dict)
        return event_dict

    def _sanitize_event_dict(self, event_dict: Dict[str, Any]):
        for key in list(event_dict.keys()):
            if any(sensitive in key.lower() for sensitive in self.sensitive_keys):
                event_dict[key] = '[REDACTED]'
            elif isinstance(event_dict[key], dict):
                self._sanitize_event_dict(event_dict[key])


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that runs the same context/redaction processors"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._context = RequestContextProcessor()
        self._security = SecurityLogProcessor()

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno

        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)

        self._context(None, record.levelname.lower(), log_record)
        self._security(None, record.levelname.lower(), log_record)


class LoggingConfig:
    """Centralized logging configuration"""

    @staticmethod
    def _shared_processors():
        return [
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            RequestContextProcessor(),
            SecurityLogProcessor(),
        ]

    @staticmethod
    def build_formatter(settings: Settings) -> logging.Formatter:
        if settings.LOG_FORMAT == "json":
            return CustomJsonFormatter('%(asctime)s %(name)s %(levelname)s %(message)s')

        return structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=False),
            foreign_pre_chain=[
                structlog.stdlib.ExtraAdder(),
                *LoggingConfig._shared_processors(),
                structlog.processors.TimeStamper(fmt="iso"),
            ],
        )

    @staticmethod
    def configure_standard_logging(settings: Settings):
        """Configure the root logger with one stdout handler"""
        level = getattr(logging, settings.LOG_LEVEL)

        root_logger = logging.getLogger()
        root_logger.setLevel(level)

        for handler in list(root_logger.handlers):
            if getattr(handler, '_hostel_handler', False):
                root_logger.removeHandler(handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(LoggingConfig.build_formatter(settings))
        console_handler._hostel_handler = True
        root_logger.addHandler(console_handler)

        LoggingConfig._configure_library_loggers(settings)

    @staticmethod
    def _configure_library_loggers(settings: Settings):
        """Reduce noise from external libraries"""
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("uvicorn.error").setLevel(logging.INFO)

        if settings.LOG_SQL_QUERIES:
            logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
        else:
            logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


class LoggerAdapter:
    """Logger wrapper that merges bound context into ``extra``"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self._context: Dict[str, Any] = {}

    def add_context(self, **kwargs):
        """Add context to all log messages"""
        self._context.update(kwargs)
        return self

    def clear_context(self):
        self._context.clear()
        return self

    def _log(self, level: int, message: str, *args, **kwargs):
        extra = dict(self._context)
        extra.update(kwargs.get('extra') or {})
        kwargs['extra'] = {
            (f'ctx_{key}' if key in _RESERVED_ATTRS else key): value
            for key, value in extra.items()
        }
        self.logger.log(level, message, *args, **kwargs)

    def debug(self, message: str, *args, **kwargs):
        self._log(logging.DEBUG, message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs):
        self._log(logging.INFO, message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs):
        self._log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs):
        self._log(logging.ERROR, message, *args, **kwargs)

    def exception(self, message: str, *args, **kwargs):
        kwargs.setdefault('exc_info', True)
        self._log(logging.ERROR, message, *args, **kwargs)

    def critical(self, message: str, *args, **kwargs):
        self._log(logging.CRITICAL, message, *args, **kwargs)


def get_logger(name: Optional[str] = None) -> LoggerAdapter:
    """
    Get configured logger instance.

    Args:
        name: Logger name (defaults to the package logger)

    Returns:
        Logger adapter with context support
    """
    return LoggerAdapter(logging.getLogger(name or 'hostel_app'))


def setup_logging(settings: Settings) -> None:
    """Initialize logging configuration from settings"""
    global _environment
    _environment = settings.ENVIRONMENT

    LoggingConfig.configure_standard_logging(settings)

    get_logger(__name__).info("Logging system initialized", extra={
        'log_level': settings.LOG_LEVEL,
        'log_format': settings.LOG_FORMAT,
    })


__all__ = [
    'get_logger',
    'setup_logging',
    'LoggerAdapter',
    'LoggingConfig',
    'CustomJsonFormatter',
    'request_id',
    'user_id',
]
