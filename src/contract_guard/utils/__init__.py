"""Utility modules for contract-guard."""

from .error_handling import (
    ContractGuardError,
    ExtractionError,
    ContractFormatError,
    ContractValidationError,
    DiffError,
    ConfigurationError,
    format_user_error,
    format_user_warning,
)

__all__ = [
    'ContractGuardError',
    'ExtractionError',
    'ContractFormatError',
    'ContractValidationError',
    'DiffError',
    'ConfigurationError',
    'format_user_error',
    'format_user_warning',
]
