"""
Error handling utilities for the RAPTOR service.

Provides consistent error logging and FastAPI exception handlers that
render RaptorError subclasses as standard error envelopes.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .codes import ErrorCode
from .exceptions import RaptorError
from .response import error_response

logger = logging.getLogger(__name__)

# HTTP status per error family; everything else maps to 500
_STATUS_BY_PREFIX = {
    "VALIDATION_": 400,
    "EXTERNAL_": 502,
    "LLM_": 502,
}


def status_for(error: RaptorError) -> int:
    """Map an error code to an HTTP status code."""
    for prefix, status in _STATUS_BY_PREFIX.items():
        if error.code.value.startswith(prefix):
            return status
    return 500


def log_error(
    logger: logging.Logger, error: Exception, context: Optional[str] = None, include_traceback: bool = True
) -> None:
    """Log an error with consistent formatting.

    Args:
        logger: Logger instance to use
        error: The exception to log
        context: Optional context string to prefix the message
        include_traceback: Whether to include the full stack trace

    Example:
        >>> log_error(logger, err, context="Level 2")
        # Logs: "[Level 2] CLUSTERING_LEVEL_FAILED: Embedding call failed"
    """
    if isinstance(error, RaptorError):
        message = f"{error.code.value}: {error.message}"
    else:
        message = str(error)

    if context:
        message = f"[{context}] {message}"

    logger.error(message, exc_info=include_traceback)


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers that turn exceptions into error envelopes."""

    @app.exception_handler(RaptorError)
    async def _raptor_error_handler(request: Request, exc: RaptorError) -> JSONResponse:
        status = status_for(exc)
        if status >= 500:
            log_error(logger, exc, context=request.url.path)
        else:
            logger.info(f"[{request.url.path}] {exc.code.value}: {exc.message}")
        return JSONResponse(status_code=status, content=error_response(exc, endpoint=request.url.path))

    @app.exception_handler(Exception)
    async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        log_error(logger, exc, context=request.url.path)
        content = error_response(exc, endpoint=request.url.path)
        content["error"]["code"] = ErrorCode.INTERNAL_UNEXPECTED.value
        return JSONResponse(status_code=500, content=content)
