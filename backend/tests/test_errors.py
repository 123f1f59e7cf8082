"""
Tests for the RAPTOR error handling module.
"""

import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from errors import (
    ErrorCode,
    RaptorError,
    InvalidInputError,
    ClusteringError,
    SummarizationError,
    ProcessingError,
    LLMError,
    ExternalServiceError,
    error_response,
    log_error,
    register_exception_handlers,
    status_for,
)


class TestErrorCodes:
    """Test error code enum."""

    def test_error_codes_are_strings(self):
        """Error codes should be string values."""
        assert ErrorCode.VALIDATION_EMPTY_TEXT.value == "VALIDATION_EMPTY_TEXT"
        assert ErrorCode.CLUSTERING_LEVEL_FAILED.value == "CLUSTERING_LEVEL_FAILED"

    def test_error_codes_have_categories(self):
        """Error codes should follow category naming convention."""
        validation_codes = [c for c in ErrorCode if c.value.startswith("VALIDATION_")]
        assert len(validation_codes) >= 5

        clustering_codes = [c for c in ErrorCode if c.value.startswith("CLUSTERING_")]
        assert len(clustering_codes) == 3


class TestRaptorError:
    """Test base RaptorError exception."""

    def test_basic_creation(self):
        """Create basic error with message."""
        err = RaptorError("Test error")
        assert err.message == "Test error"
        assert err.details is None
        assert err.code == ErrorCode.INTERNAL_UNEXPECTED
        assert err.recoverable is False

    def test_with_details(self):
        err = RaptorError("Test error", details="More info")
        assert str(err) == "Test error - More info"

    def test_with_context(self):
        err = RaptorError("Test error", foo="bar", count=42)
        assert err.context == {"foo": "bar", "count": 42}

    def test_override_code_and_recoverable(self):
        err = RaptorError("Test", code=ErrorCode.INTERNAL_CONFIG_ERROR, recoverable=True)
        assert err.code == ErrorCode.INTERNAL_CONFIG_ERROR
        assert err.recoverable is True

    def test_to_dict(self):
        err = RaptorError("Test error", details="Details", key="value")
        assert err.to_dict() == {
            "code": "INTERNAL_UNEXPECTED",
            "message": "Test error",
            "details": "Details",
            "recoverable": False,
            "context": {"key": "value"},
        }


class TestInvalidInputError:
    """Test InvalidInputError codes."""

    def test_error_types_map_to_codes(self):
        cases = {
            "empty": ErrorCode.VALIDATION_EMPTY_TEXT,
            "range": ErrorCode.VALIDATION_OUT_OF_RANGE,
            "format": ErrorCode.VALIDATION_INVALID_FORMAT,
            "embedding": ErrorCode.VALIDATION_EMBEDDING_INVALID,
            "type": ErrorCode.VALIDATION_INVALID_TYPE,
            None: ErrorCode.VALIDATION_MISSING_PARAM,
        }
        for error_type, code in cases.items():
            assert InvalidInputError("bad", error_type=error_type).code == code

    def test_context_fields(self):
        err = InvalidInputError("Out of range", parameter="chunkSize", expected="100-10000", received="5")
        assert err.context == {"parameter": "chunkSize", "expected": "100-10000", "received": "5"}
        assert err.recoverable is True


class TestClusteringError:
    """Test ClusteringError stages."""

    def test_stages(self):
        assert ClusteringError("x", stage="fit").code == ErrorCode.CLUSTERING_FIT_FAILED
        assert ClusteringError("x", stage="pass").code == ErrorCode.CLUSTERING_PASS_FAILED
        assert ClusteringError("x", stage="level").code == ErrorCode.CLUSTERING_LEVEL_FAILED
        assert ClusteringError("x").code == ErrorCode.CLUSTERING_PASS_FAILED

    def test_stage_in_context(self):
        err = ClusteringError("x", stage="fit", n_components=3)
        assert err.context == {"n_components": 3, "stage": "fit"}


class TestOtherErrors:
    """Test remaining exception types."""

    def test_summarization_error_context(self):
        err = SummarizationError("failed", cluster_id=0, level=2)
        assert err.code == ErrorCode.SUMMARIZATION_FAILED
        assert err.context == {"cluster_id": 0, "level": 2}

    def test_processing_error(self):
        err = ProcessingError("Failed to process text: boom")
        assert err.code == ErrorCode.PROCESSING_FAILED
        assert err.recoverable is False

    def test_llm_error_types(self):
        assert LLMError("x", error_type="timeout").code == ErrorCode.LLM_TIMEOUT
        assert LLMError("x", error_type="invalid").code == ErrorCode.LLM_RESPONSE_INVALID
        assert LLMError("x", model="qwen").context == {"model": "qwen"}

    def test_external_service_error(self):
        err = ExternalServiceError("down", service="embedding", status_code=503)
        assert err.code == ErrorCode.EXTERNAL_EMBEDDING_FAILED
        assert err.context == {"service": "embedding", "status_code": 503}
        assert ExternalServiceError("down").code == ErrorCode.EXTERNAL_NETWORK_ERROR


class TestResponses:
    """Test response builders and status mapping."""

    def test_error_response(self):
        err = InvalidInputError("Text cannot be empty", parameter="text", error_type="empty")
        response = error_response(err, endpoint="process")

        assert response["success"] is False
        assert response["error"]["code"] == "VALIDATION_EMPTY_TEXT"
        assert response["error"]["endpoint"] == "process"
        assert response["error"]["context"] == {"parameter": "text"}

    def test_error_response_without_context(self):
        err = InvalidInputError("bad", parameter="text")
        assert error_response(err, include_context=False)["error"]["context"] is None

    def test_error_response_foreign_exception(self):
        response = error_response(ValueError("boom"))
        assert response["error"]["code"] == "INTERNAL_UNEXPECTED"
        assert response["error"]["message"] == "boom"

    def test_status_for(self):
        assert status_for(InvalidInputError("x", error_type="range")) == 400
        assert status_for(ExternalServiceError("x")) == 502
        assert status_for(LLMError("x")) == 502
        assert status_for(ProcessingError("x")) == 500
        assert status_for(ClusteringError("x")) == 500


class TestLogError:
    """Test consistent error logging."""

    def test_raptor_error_format(self, caplog):
        logger = logging.getLogger("test.errors")
        err = ClusteringError("Level 2 failed", stage="level")

        with caplog.at_level(logging.ERROR):
            log_error(logger, err, context="Level 2", include_traceback=False)

        assert "[Level 2] CLUSTERING_LEVEL_FAILED: Level 2 failed" in caplog.text

    def test_plain_exception(self, caplog):
        logger = logging.getLogger("test.errors")

        with caplog.at_level(logging.ERROR):
            log_error(logger, ValueError("plain"), include_traceback=False)

        assert caplog.records[-1].getMessage() == "plain"


class TestExceptionHandlers:
    """Test FastAPI exception handlers."""

    @staticmethod
    def _client():
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/invalid")
        def invalid():
            raise InvalidInputError("Text cannot be empty", parameter="text", error_type="empty")

        @app.get("/processing")
        def processing():
            raise ProcessingError("Failed to process text: boom")

        @app.get("/crash")
        def crash():
            raise RuntimeError("unexpected")

        return TestClient(app, raise_server_exceptions=False)

    def test_validation_error_is_400(self):
        response = self._client().get("/invalid")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_EMPTY_TEXT"
        assert response.json()["error"]["endpoint"] == "/invalid"

    def test_processing_error_is_500(self):
        response = self._client().get("/processing")

        assert response.status_code == 500
        assert response.json()["error"]["message"] == "Failed to process text: boom"

    def test_unexpected_error_is_500(self):
        response = self._client().get("/crash")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_UNEXPECTED"
