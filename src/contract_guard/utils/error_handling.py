"""Error types and terminal message helpers shared across contract-guard."""

from typing import Any, Dict, Optional


class ContractGuardError(Exception):
    """Base class for every error raised by contract-guard."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})


class ExtractionError(ContractGuardError):
    """A source package could not be located, read or parsed.

    Extraction is all-or-nothing: when this is raised no partial contract
    exists.
    """

    def __init__(self, package_path: str, message: str):
        super().__init__(
            f"Failed to extract contract from {package_path}: {message}",
            {"package_path": package_path},
        )
        self.package_path = package_path


class ContractFormatError(ContractGuardError):
    """A contract document is not valid JSON/YAML or violates the schema."""

    def __init__(self, violation: str, location: Optional[str] = None, source: Optional[str] = None):
        where = f" at {location}" if location else ""
        origin = f" in {source}" if source else ""
        super().__init__(
            f"Invalid contract document{origin}{where}: {violation}",
            {"violation": violation, "location": location, "source": source},
        )
        self.violation = violation
        self.location = location
        self.source = source


class ContractValidationError(ValueError, ContractGuardError):
    """A model object was built in breach of its invariants."""

    def __init__(self, message: str, symbol: Optional[str] = None):
        ContractGuardError.__init__(self, message, {"symbol": symbol})
        self.symbol = symbol


class DiffError(ContractGuardError):
    """One of the two contracts handed to the differ failed validation."""

    def __init__(self, which: str, violation: str):
        super().__init__(
            f"Cannot compare contracts: {which} contract is invalid: {violation}",
            {"which": which, "violation": violation},
        )
        self.which = which
        self.violation = violation


class ConfigurationError(ContractGuardError):
    """Configuration file unreadable or an option has the wrong type."""


def format_user_error(error: BaseException) -> str:
    """Format an exception as a single line suitable for the terminal."""
    if isinstance(error, ContractGuardError):
        return f"❌ {error.message}"
    return f"❌ {type(error).__name__}: {error}"


def format_user_warning(message: str) -> str:
    """Format a warning line for the terminal."""
    return f"⚠️  {message}"
