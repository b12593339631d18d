"""
Core middleware package.

This package provides:
- Error handling with sensitive data sanitization
- Structured JSON logging with request id propagation
"""

from core.middleware.error_handling import (
    setup_error_handlers,
    sanitize_error_message,
)

from core.middleware.logging import (
    StructuredLoggingMiddleware,
    setup_logging,
)

__all__ = [
    # Error handling
    "setup_error_handlers",
    "sanitize_error_message",
    # Logging
    "StructuredLoggingMiddleware",
    "setup_logging",
]
