"""
Error codes for the RAPTOR service.

Provides a standardized taxonomy of error codes organized by category.
Use these codes consistently across all error responses.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes for the RAPTOR service.

    Categories:
    - VALIDATION_*: Input validation errors
    - CLUSTERING_*: Mixture fitting and clustering errors
    - SUMMARIZATION_*: Cluster summary generation errors
    - PROCESSING_*: Pipeline errors surfaced to the caller
    - LLM_*: Language model errors
    - EXTERNAL_*: External service errors
    - INTERNAL_*: Internal/unexpected errors
    """

    # Validation errors (input checking)
    VALIDATION_MISSING_PARAM = "VALIDATION_MISSING_PARAM"
    VALIDATION_EMPTY_TEXT = "VALIDATION_EMPTY_TEXT"
    VALIDATION_INVALID_TYPE = "VALIDATION_INVALID_TYPE"
    VALIDATION_OUT_OF_RANGE = "VALIDATION_OUT_OF_RANGE"
    VALIDATION_INVALID_FORMAT = "VALIDATION_INVALID_FORMAT"
    VALIDATION_EMBEDDING_INVALID = "VALIDATION_EMBEDDING_INVALID"

    # Clustering errors
    CLUSTERING_FIT_FAILED = "CLUSTERING_FIT_FAILED"
    CLUSTERING_PASS_FAILED = "CLUSTERING_PASS_FAILED"
    CLUSTERING_LEVEL_FAILED = "CLUSTERING_LEVEL_FAILED"

    # Summarization errors
    SUMMARIZATION_FAILED = "SUMMARIZATION_FAILED"

    # Processing errors (surfaced to the caller)
    PROCESSING_FAILED = "PROCESSING_FAILED"

    # LLM errors (model interactions)
    LLM_UNAVAILABLE = "LLM_UNAVAILABLE"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    LLM_RESPONSE_INVALID = "LLM_RESPONSE_INVALID"

    # External service errors
    EXTERNAL_EMBEDDING_FAILED = "EXTERNAL_EMBEDDING_FAILED"
    EXTERNAL_LLM_FAILED = "EXTERNAL_LLM_FAILED"
    EXTERNAL_NETWORK_ERROR = "EXTERNAL_NETWORK_ERROR"

    # Internal errors (unexpected failures)
    INTERNAL_UNEXPECTED = "INTERNAL_UNEXPECTED"
    INTERNAL_CONFIG_ERROR = "INTERNAL_CONFIG_ERROR"
