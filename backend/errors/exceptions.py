"""
Exception hierarchy for the RAPTOR service.

Every error carries an ErrorCode, a message for humans, optional details, a
recoverable flag (can the caller fix it and retry?) and free-form context.
Subclasses that cover several codes pick one from a short `kind` string,
e.g. InvalidInputError(error_type="range") -> VALIDATION_OUT_OF_RANGE.
"""

from typing import Any, Dict, Optional

from .codes import ErrorCode


def _compact(**values: Any) -> Dict[str, Any]:
    """Context entries that were actually supplied."""
    return {key: value for key, value in values.items() if value is not None and value != ""}


class RaptorError(Exception):
    """Base exception for all RAPTOR service errors.

    Attributes:
        code: ErrorCode for this failure
        message: Human-readable summary
        details: Underlying cause, usually the wrapped exception's text
        recoverable: True when the caller can change its input and retry
        context: Debugging key/values, None when empty
    """

    code: ErrorCode = ErrorCode.INTERNAL_UNEXPECTED
    recoverable: bool = False

    # kind -> code, for subclasses that cover a family of codes
    CODES: Dict[str, ErrorCode] = {}

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        recoverable: Optional[bool] = None,
        **context: Any,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        self.code = code or type(self).code
        self.recoverable = type(self).recoverable if recoverable is None else recoverable
        self.context = context or None

    @classmethod
    def code_for(cls, kind: Optional[str]) -> ErrorCode:
        return cls.CODES.get(kind, cls.code)

    def __str__(self) -> str:
        return f"{self.message} - {self.details}" if self.details else self.message

    def to_dict(self) -> dict:
        """JSON-ready view, as embedded in error envelopes."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class InvalidInputError(RaptorError):
    """Rejected input: blank text, malformed embeddings, out-of-range request values."""

    code = ErrorCode.VALIDATION_MISSING_PARAM
    recoverable = True
    CODES = {
        "empty": ErrorCode.VALIDATION_EMPTY_TEXT,
        "range": ErrorCode.VALIDATION_OUT_OF_RANGE,
        "format": ErrorCode.VALIDATION_INVALID_FORMAT,
        "embedding": ErrorCode.VALIDATION_EMBEDDING_INVALID,
        "type": ErrorCode.VALIDATION_INVALID_TYPE,
    }

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        parameter: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
        error_type: Optional[str] = None,
        **context: Any,
    ):
        super().__init__(
            message,
            details,
            code=self.code_for(error_type),
            **context,
            **_compact(parameter=parameter, expected=expected, received=received),
        )


class ClusteringError(RaptorError):
    """Numerical or structural failure while clustering embeddings.

    stage: "fit" (one candidate k), "pass" (one clustering run) or "level"
    (a whole tree level, replaced by a fallback result).
    """

    code = ErrorCode.CLUSTERING_PASS_FAILED
    CODES = {
        "fit": ErrorCode.CLUSTERING_FIT_FAILED,
        "pass": ErrorCode.CLUSTERING_PASS_FAILED,
        "level": ErrorCode.CLUSTERING_LEVEL_FAILED,
    }

    def __init__(self, message: str, details: Optional[str] = None, stage: Optional[str] = None, **context: Any):
        super().__init__(message, details, code=self.code_for(stage), **context, **_compact(stage=stage))


class SummarizationError(RaptorError):
    """Text generator failed for one cluster."""

    code = ErrorCode.SUMMARIZATION_FAILED
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        cluster_id: Optional[int] = None,
        level: Optional[int] = None,
        **context: Any,
    ):
        super().__init__(message, details, **context, **_compact(cluster_id=cluster_id, level=level))


class ProcessingError(RaptorError):
    """Unexpected pipeline failure surfaced to the caller."""

    code = ErrorCode.PROCESSING_FAILED


class LLMError(RaptorError):
    """The model server answered, but not usefully (timeout, empty or malformed output)."""

    code = ErrorCode.LLM_UNAVAILABLE
    CODES = {
        "timeout": ErrorCode.LLM_TIMEOUT,
        "invalid": ErrorCode.LLM_RESPONSE_INVALID,
    }

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        model: Optional[str] = None,
        error_type: Optional[str] = None,
        **context: Any,
    ):
        super().__init__(message, details, code=self.code_for(error_type), **context, **_compact(model=model))


class ExternalServiceError(RaptorError):
    """The embedding or chat server could not be reached or returned an error status."""

    code = ErrorCode.EXTERNAL_NETWORK_ERROR
    recoverable = True
    CODES = {
        "embedding": ErrorCode.EXTERNAL_EMBEDDING_FAILED,
        "llm": ErrorCode.EXTERNAL_LLM_FAILED,
    }

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        service: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        super().__init__(
            message,
            details,
            code=self.code_for(service),
            **context,
            **_compact(service=service, status_code=status_code),
        )
