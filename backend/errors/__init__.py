"""
RAPTOR error handling: codes, exceptions, envelopes and FastAPI handlers.

Usage:
    from errors import InvalidInputError

    def split_text(text):
        if text is None or not text.strip():
            raise InvalidInputError(
                "Text cannot be null or empty",
                parameter="text",
                error_type="empty",
            )

Pipeline stages raise the most specific subclass; the HTTP layer turns any
RaptorError into an envelope via register_exception_handlers(app).
"""

from .codes import ErrorCode
from .exceptions import (
    RaptorError,
    InvalidInputError,
    ClusteringError,
    SummarizationError,
    ProcessingError,
    LLMError,
    ExternalServiceError,
)
from .response import error_response
from .handlers import (
    log_error,
    register_exception_handlers,
    status_for,
)

__all__ = [
    "ErrorCode",
    "RaptorError",
    "InvalidInputError",
    "ClusteringError",
    "SummarizationError",
    "ProcessingError",
    "LLMError",
    "ExternalServiceError",
    "error_response",
    "log_error",
    "register_exception_handlers",
    "status_for",
]
