"""Unit tests for exception handling system.

Tests both the exception hierarchy and the exception handler utilities.
"""

import json

import pytest

from ragtrace.adapters.common.exception_handler import (
    format_exception_json,
    get_error_code,
    get_http_status_code,
)
from ragtrace.core.domain.exceptions import (
    CollaboratorError,
    CollaboratorTimeoutError,
    ConfigurationError,
    EmbeddingAPIError,
    EmbeddingError,
    EmptyQuestionError,
    InputError,
    LLMGenerationError,
    LLMRateLimitError,
    MissingAPIKeyError,
    NonCriticalStageError,
    PersistenceError,
    QdrantQueryError,
    QuestionTooLongError,
    RagTraceError,
    RetrievalError,
    RunNotFoundError,
    ToolStageError,
    VectorStoreError,
)

# Apply @pytest.mark.unit to all tests in this module
pytestmark = pytest.mark.unit


class TestExceptionHierarchy:
    """Tests for the exception class hierarchy."""

    def test_collaborator_errors(self):
        """Embedding, retrieval and LLM failures are fatal collaborator errors."""
        assert issubclass(EmbeddingAPIError, EmbeddingError)
        assert issubclass(EmbeddingError, CollaboratorError)
        assert issubclass(QdrantQueryError, VectorStoreError)
        assert issubclass(VectorStoreError, RetrievalError)
        assert issubclass(RetrievalError, CollaboratorError)
        assert issubclass(LLMGenerationError, CollaboratorError)
        assert issubclass(CollaboratorTimeoutError, CollaboratorError)

    def test_input_errors(self):
        assert issubclass(EmptyQuestionError, InputError)
        assert issubclass(QuestionTooLongError, InputError)

    def test_non_critical_and_persistence_errors(self):
        assert issubclass(ToolStageError, NonCriticalStageError)
        assert issubclass(RunNotFoundError, PersistenceError)
        assert not issubclass(NonCriticalStageError, CollaboratorError)

    def test_config_errors_inherit_from_configuration(self):
        assert issubclass(MissingAPIKeyError, ConfigurationError)
        assert issubclass(ConfigurationError, RagTraceError)


class TestExceptionCreation:
    """Tests for creating and using exceptions."""

    def test_basic_exception_creation(self):
        exc = RagTraceError("Test error message")
        assert str(exc) == "Test error message"
        assert exc.message == "Test error message"
        assert exc.error_code == "RT_ERR_001"

    def test_exception_with_cause_and_context(self):
        try:
            raise ValueError("bad value")
        except ValueError as e:
            exc = EmbeddingAPIError("Embedding failed", cause=e, context={"model": "m"})

        data = exc.to_dict()
        assert data["error"]["type"] == "EmbeddingAPIError"
        assert data["cause"] == {"type": "ValueError", "message": "bad value"}
        assert data["context"] == {"model": "m"}
        json.dumps(data)

    def test_location_is_captured(self):
        def raising_function():
            raise QdrantQueryError("query failed")

        with pytest.raises(QdrantQueryError) as info:
            raising_function()
        assert info.value.location.method_name == "raising_function"


class TestExceptionHandler:
    """Tests for the exception handler utilities."""

    def test_format_standard_exception(self):
        try:
            raise KeyError("missing")
        except KeyError as e:
            data = format_exception_json(e, include_trace=True)

        assert data["error"]["code"] == "PYTHON_ERR"
        assert data["error"]["type"] == "KeyError"
        assert data["stack_trace"]

    def test_error_codes(self):
        assert get_error_code(EmptyQuestionError("x")) == "RT_VAL_002"
        assert get_error_code(RuntimeError("x")) == "PYTHON_ERR"

    @pytest.mark.parametrize(
        ("exc", "status"),
        [
            (EmptyQuestionError("x"), 400),
            (RunNotFoundError("x"), 404),
            (LLMRateLimitError("x"), 429),
            (CollaboratorTimeoutError("x"), 504),
            (QdrantQueryError("x"), 503),
            (MissingAPIKeyError("x"), 500),
            (ValueError("x"), 400),
            (ConnectionError("x"), 503),
            (RuntimeError("x"), 500),
        ],
    )
    def test_http_status_mapping(self, exc, status):
        assert get_http_status_code(exc) == status


class TestRetryable:
    """Transient collaborator failures are flagged as retryable."""

    @pytest.mark.parametrize(
        ("exc", "retryable"),
        [
            (CollaboratorTimeoutError("x"), True),
            (LLMRateLimitError("x"), True),
            (QdrantQueryError("x"), False),
            (EmptyQuestionError("x"), False),
        ],
    )
    def test_flag_in_structured_output(self, exc, retryable):
        assert exc.to_dict()["error"]["retryable"] is retryable
