"""
Structured logging with request_id propagation.

Records are JSON in production and a single readable line otherwise.
"""
import json
import logging
import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

from tailauth.core.config import settings

request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
request_start_var: ContextVar[Optional[float]] = ContextVar('request_start', default=None)


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


class StructuredLogger:
    """Wraps a stdlib logger and attaches request context to every record."""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)
        self._is_json = settings.APP_ENV == 'production'

    def _record(self, level: str, message: str, extra: Dict[str, Any], error: Optional[Exception]) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            'timestamp': time.strftime('%Y-%m-%dT%H:%M:%S%z'),
            'level': level,
            'logger': self.name,
            'message': message,
        }
        request_id = get_request_id()
        if request_id:
            record['request_id'] = request_id
        if extra:
            record['context'] = extra
        if error is not None:
            record['error'] = f"{type(error).__name__}: {error}"
        return record

    def _render(self, record: Dict[str, Any]) -> str:
        if self._is_json:
            return json.dumps(record, default=str)

        line = f"[{record.get('request_id', '-')}] {record['message']}"
        if 'context' in record:
            line += ' ' + ' '.join(f"{key}={value}" for key, value in record['context'].items())
        if 'error' in record:
            line += f" error={record['error']}"
        return line

    def _log(self, level: int, message: str, extra: Dict[str, Any], error: Optional[Exception] = None):
        if not self.logger.isEnabledFor(level):
            return
        record = self._record(logging.getLevelName(level), message, extra, error)
        self.logger.log(level, self._render(record))

    def debug(self, message: str, **extra):
        self._log(logging.DEBUG, message, extra)

    def info(self, message: str, **extra):
        self._log(logging.INFO, message, extra)

    def warning(self, message: str, **extra):
        self._log(logging.WARNING, message, extra)

    def error(self, message: str, error: Optional[Exception] = None, **extra):
        self._log(logging.ERROR, message, extra, error)


def get_logger(name: str = 'tail-authz') -> StructuredLogger:
    return StructuredLogger(name)


api_logger = get_logger('tail-authz.api')
authz_logger = get_logger('tail-authz.authz')
team_logger = get_logger('tail-authz.team')
