"""Mortgage CRM Exception Hierarchy.

All custom exceptions inherit from MortgageCRMError.
Contract violations (unknown stage, unknown id) live under PipelineError;
user input problems live under ValidationError.

Exception Hierarchy:
    MortgageCRMError (base)
    ├── ConfigurationError
    ├── ValidationError
    │   └── EmptyTextError
    ├── StorageError
    └── PipelineError
        ├── InvalidStageError
        └── NotFoundError
"""


class MortgageCRMError(Exception):
    """Base exception for all Mortgage CRM errors.

    Catch this to handle any failure raised by the package.
    """

    pass


class ConfigurationError(MortgageCRMError):
    """Configuration is invalid or missing.

    Raised when:
        - Environment value cannot be parsed
        - Path is not writable
    """

    pass


class ValidationError(MortgageCRMError):
    """Data validation failed.

    Raised when:
        - Deal name is missing or blank
        - Edited field is not editable

    The operation is rejected and no state changes.
    """

    pass


class EmptyTextError(ValidationError):
    """Needs item text is empty or whitespace only."""

    pass


class StorageError(MortgageCRMError):
    """Persistence operation failed.

    Raised when:
        - Store file cannot be opened
        - Query execution fails
        - Snapshot is not valid JSON or holds malformed records
    """

    pass


class PipelineError(MortgageCRMError):
    """Pipeline operation failed.

    Base class for contract violations by the caller.
    """

    pass


class InvalidStageError(PipelineError):
    """Stage key is not one of the five pipeline stages."""

    pass


class NotFoundError(PipelineError):
    """Referenced deal or needs item does not exist."""

    pass
