"""
Structured logging middleware.
Logs every request with its id, the calling actor and the response timing.
"""

import logging
import time
import json
import uuid
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import traceback

logger = logging.getLogger(__name__)

# Record attributes copied into JSON log lines when a caller passes them via ``extra``
EXTRA_FIELDS = (
    "request_id",
    "actor_role",
    "actor_id",
    "job_id",
    "application_id",
    "notification_id",
    "notification_type",
    "recipient_role",
    "recipient_id",
    "priority",
    "action_required",
)


def should_log_request(path: str) -> bool:
    """
    Determine if a request should be logged based on the path.

    Args:
        path: Request path

    Returns:
        True if request should be logged, False otherwise
    """
    # Don't log health checks to reduce noise
    skip_paths = ['/health', '/healthz', '/ready', '/alive']
    return not any(path.startswith(skip) for skip in skip_paths)


class StructuredFormatter(logging.Formatter):
    """Formatter for structured JSON logs."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data, default=str)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Request logging with request id propagation.

    Reads ``x-request-id`` (or generates one), echoes it on the response and
    tags both log lines with the actor role and id from the identity headers.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get('x-request-id', str(uuid.uuid4()))
        request.state.request_id = request_id

        if not should_log_request(request.url.path):
            response = await call_next(request)
            response.headers['x-request-id'] = request_id
            return response

        start_time = time.time()
        context = {
            'request_id': request_id,
            'actor_role': request.headers.get('x-actor-role', 'anonymous'),
            'actor_id': request.headers.get('x-actor-id'),
        }

        logger.info(json.dumps({
            'event': 'request_started',
            'method': request.method,
            'path': request.url.path,
            **context,
        }))

        response = None
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"Request processing error: {request.method} {request.url.path}",
                exc_info=True,
                extra={**context, 'error': {'type': type(exc).__name__, 'message': str(exc)}},
            )
            raise
        finally:
            duration = time.time() - start_time
            response_log = {
                'event': 'request_completed',
                'method': request.method,
                'path': request.url.path,
                'duration_ms': round(duration * 1000, 2),
                'status_code': response.status_code if response else 500,
                **context,
            }

            if response and response.status_code >= 500:
                logger.error(json.dumps(response_log))
            elif response and response.status_code >= 400:
                logger.warning(json.dumps(response_log))
            else:
                logger.info(json.dumps(response_log))

            if response:
                response.headers['x-request-id'] = request_id

        return response


def setup_logging(log_level: str = "INFO", json_logs: bool = True):
    """
    Configure application-wide structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: Whether to format logs as JSON
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, log_level.upper()))

    if json_logs:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
