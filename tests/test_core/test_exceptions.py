"""Tests for exception hierarchy."""

import pytest

from mortgage_crm.core.exceptions import (
    ConfigurationError,
    EmptyTextError,
    InvalidStageError,
    MortgageCRMError,
    NotFoundError,
    PipelineError,
    StorageError,
    ValidationError,
)


class TestExceptionHierarchy:
    """Test exception inheritance."""

    def test_all_exceptions_inherit_from_base(self):
        """All custom exceptions should inherit from MortgageCRMError."""
        exceptions = [
            ConfigurationError,
            ValidationError,
            EmptyTextError,
            StorageError,
            PipelineError,
            InvalidStageError,
            NotFoundError,
        ]
        for exc_class in exceptions:
            assert issubclass(exc_class, MortgageCRMError)

    def test_empty_text_is_validation_error(self):
        """Blank needs text is a recoverable validation failure."""
        assert issubclass(EmptyTextError, ValidationError)

    def test_contract_violations_are_pipeline_errors(self):
        """Unknown stage and unknown id are pipeline errors."""
        assert issubclass(InvalidStageError, PipelineError)
        assert issubclass(NotFoundError, PipelineError)
        assert not issubclass(NotFoundError, ValidationError)


class TestExceptionMessages:
    """Test exceptions can be raised with messages."""

    def test_base_error_with_message(self):
        """MortgageCRMError can have a message."""
        with pytest.raises(MortgageCRMError, match="test error"):
            raise MortgageCRMError("test error")

    def test_catching_base_exception(self):
        """Can catch specific errors with base class."""
        try:
            raise InvalidStageError("Unknown stage: 'won'")
        except MortgageCRMError as e:
            assert "won" in str(e)
