"""
Error envelope shared by every HTTP error response.

    {"success": false, "error": {code, message, details, endpoint, recoverable, context}}
"""

from typing import Optional

from .codes import ErrorCode
from .exceptions import RaptorError


def error_response(error: Exception, endpoint: Optional[str] = None, include_context: bool = True) -> dict:
    """Wrap an exception in the standard error envelope.

    Exceptions from outside the RaptorError hierarchy are reported as
    INTERNAL_UNEXPECTED with their str() as the message.

    Example:
        >>> error_response(InvalidInputError("Text cannot be empty", parameter="text", error_type="empty"), "/process")
        {"success": False, "error": {"code": "VALIDATION_EMPTY_TEXT", ..., "context": {"parameter": "text"}}}
    """
    if isinstance(error, RaptorError):
        body = error.to_dict()
        if not include_context:
            body["context"] = None
    else:
        body = {
            "code": ErrorCode.INTERNAL_UNEXPECTED.value,
            "message": str(error),
            "details": None,
            "recoverable": False,
            "context": None,
        }

    body["endpoint"] = endpoint
    return {"success": False, "error": body}
