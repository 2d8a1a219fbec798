"""
Logging Service for the moderation platform
Provides structured logging with JSON format and request correlation IDs.
"""

import json
import logging
import logging.config
import sys
import time
import traceback
import uuid
from datetime import datetime
from typing import Dict, Any, Optional
from contextvars import ContextVar
from pathlib import Path

from shared_lib.config import SystemConfig

# Context variables for request correlation
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar('user_id', default=None)

ROOT_LOGGER = "moderation_platform"

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'taskName', 'message',
    'asctime', 'exc_info', 'exc_text', 'stack_info',
}

class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            'timestamp': datetime.utcnow().isoformat() + 'Z',
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if request_id_var.get():
            log_data['request_id'] = request_id_var.get()

        if user_id_var.get():
            log_data['user_id'] = user_id_var.get()

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        }
        if extra_fields:
            log_data['extra'] = extra_fields

        return json.dumps(log_data, default=str, ensure_ascii=False)

class ModerationLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter carrying moderation context"""

    def __init__(self, logger: logging.Logger, extra: Dict[str, Any] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        """Process log message and add extra context"""
        extra = dict(kwargs.get('extra') or {})

        if self.extra:
            extra.update(self.extra)

        if request_id_var.get():
            extra['request_id'] = request_id_var.get()

        kwargs['extra'] = extra
        return msg, kwargs

    def log_moderation_event(self, level: int, action: str, content_type: str,
                             content_id: str, moderator_id: str, message: str = "", **kwargs):
        """Log a moderation decision"""
        extra = {
            'event_type': 'moderation',
            'action': action,
            'content_type': content_type,
            'content_id': content_id,
            'moderator_id': moderator_id,
            **kwargs
        }
        self.log(level, message or f"{action} {content_type}:{content_id}", extra=extra)

    def log_api_request(self, method: str, endpoint: str, status_code: int,
                        duration_ms: float, **kwargs):
        """Log API request events"""
        extra = {
            'event_type': 'api_request',
            'method': method,
            'endpoint': endpoint,
            'status_code': status_code,
            'duration_ms': duration_ms,
            **kwargs
        }
        self.info(f"{method} {endpoint} - {status_code} ({duration_ms}ms)", extra=extra)

class LoggingService:
    """Service for managing application logging"""

    def __init__(self):
        self.loggers: Dict[str, ModerationLoggerAdapter] = {}

    def build_config(self, config: SystemConfig) -> Dict[str, Any]:
        """Build a dictConfig for the given settings"""
        level = config.log_level.value
        console_formatter = 'json' if config.logging.json_format else 'simple'
        handlers = {
            'console': {
                'class': 'logging.StreamHandler',
                'level': level,
                'formatter': console_formatter,
                'stream': sys.stdout
            },
        }
        handler_names = ['console']

        if config.logging.log_dir:
            log_dir = Path(config.logging.log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)
            handlers['file_all'] = {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': 'DEBUG',
                'formatter': 'json',
                'filename': str(log_dir / 'application.log'),
                'maxBytes': config.logging.max_bytes,
                'backupCount': config.logging.backup_count
            }
            handlers['file_error'] = {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': 'ERROR',
                'formatter': 'json',
                'filename': str(log_dir / 'error.log'),
                'maxBytes': config.logging.max_bytes,
                'backupCount': config.logging.backup_count
            }
            handler_names += ['file_all', 'file_error']

        return {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'json': {
                    '()': JSONFormatter,
                },
                'simple': {
                    'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
                }
            },
            'handlers': handlers,
            'loggers': {
                ROOT_LOGGER: {
                    'level': level,
                    'handlers': handler_names,
                    'propagate': False
                },
                'uvicorn': {
                    'level': 'INFO',
                    'handlers': handler_names,
                    'propagate': False
                },
                'sqlalchemy': {
                    'level': 'WARNING',
                    'handlers': handler_names,
                    'propagate': False
                }
            },
            'root': {
                'level': level,
                'handlers': handler_names
            }
        }

    def configure(self, config: SystemConfig) -> None:
        """Apply logging configuration"""
        logging.config.dictConfig(self.build_config(config))

    def get_logger(self, name: str, extra: Dict[str, Any] = None) -> ModerationLoggerAdapter:
        """Get or create a logger with the given name"""
        if name not in self.loggers:
            base_logger = logging.getLogger(f"{ROOT_LOGGER}.{name}")
            self.loggers[name] = ModerationLoggerAdapter(base_logger, extra)

        return self.loggers[name]

    def set_request_context(self, request_id: str, user_id: str = None):
        """Set request context for logging"""
        request_id_var.set(request_id)
        if user_id:
            user_id_var.set(user_id)

    def clear_request_context(self):
        """Clear request context"""
        request_id_var.set(None)
        user_id_var.set(None)

# Global logging service instance
logging_service = LoggingService()

def get_logger(name: str, extra: Dict[str, Any] = None) -> ModerationLoggerAdapter:
    """Get a logger for the given component"""
    return logging_service.get_logger(name, extra)

def get_api_logger() -> ModerationLoggerAdapter:
    return logging_service.get_logger("api")

def get_moderation_logger() -> ModerationLoggerAdapter:
    return logging_service.get_logger("moderation")

# Middleware for request logging
class LoggingMiddleware:
    """Middleware for request/response logging"""

    def __init__(self, app):
        self.app = app
        self.logger = get_api_logger()

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        start_time = time.time()

        headers = dict(scope.get("headers") or [])
        user_id = headers.get(b"x-user-id")
        logging_service.set_request_context(
            request_id, user_id.decode("latin-1") if user_id else None
        )

        # Add request_id to scope for access in endpoints
        scope["request_id"] = request_id

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                duration_ms = round((time.time() - start_time) * 1000, 2)

                self.logger.log_api_request(
                    method=scope["method"],
                    endpoint=scope["path"],
                    status_code=message["status"],
                    duration_ms=duration_ms,
                )

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            logging_service.clear_request_context()
