"""Core package - Configuration, logging, exceptions.

This package provides foundational infrastructure used by all other layers.

Modules:
    - config: Environment and configuration management
    - logging: Structured JSON logging
    - exceptions: Custom exception hierarchy
"""

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

__all__ = [
    "MortgageCRMError",
    "ConfigurationError",
    "ValidationError",
    "EmptyTextError",
    "StorageError",
    "PipelineError",
    "InvalidStageError",
    "NotFoundError",
]
