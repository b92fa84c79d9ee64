"""contract-guard: API contract extraction and breaking-change detection.

Extract a package's declared API surface into a Contract, persist it as a
canonical document, and compare two Contracts into a severity-classified
ChangeSet:

    >>> from contract_guard import ContractExtractor, ContractDiffer
    >>> old = ContractExtractor().extract("path/to/old/mypackage")  # doctest: +SKIP
    >>> new = ContractExtractor().extract("path/to/new/mypackage")  # doctest: +SKIP
    >>> ContractDiffer().compare(old, new).has_breaking_changes  # doctest: +SKIP
"""

__version__ = "1.0.0"

from .model import (
    Constant,
    Contract,
    Field,
    Function,
    Interface,
    Method,
    Parameter,
    Result,
    TypeDecl,
    TypeKind,
    Variable,
    contract_from_dict,
    contract_to_dict,
    dumps_contract,
    load_contract,
    loads_contract,
    save_contract,
)
from .introspection import ContractExtractor, ExtractionOptions, PythonSourceAdapter, SourceAdapter
from .diffing import Change, ChangeKind, ChangeSet, ContractDiffer, DiffOptions, Severity
from .reporting import ChangeSetReporter
from .utils import (
    ContractFormatError,
    ContractGuardError,
    ContractValidationError,
    DiffError,
    ExtractionError,
)

__all__ = [
    "__version__",
    "Constant",
    "Contract",
    "Field",
    "Function",
    "Interface",
    "Method",
    "Parameter",
    "Result",
    "TypeDecl",
    "TypeKind",
    "Variable",
    "contract_from_dict",
    "contract_to_dict",
    "dumps_contract",
    "load_contract",
    "loads_contract",
    "save_contract",
    "ContractExtractor",
    "ExtractionOptions",
    "PythonSourceAdapter",
    "SourceAdapter",
    "Change",
    "ChangeKind",
    "ChangeSet",
    "ContractDiffer",
    "DiffOptions",
    "Severity",
    "ChangeSetReporter",
    "ContractFormatError",
    "ContractGuardError",
    "ContractValidationError",
    "DiffError",
    "ExtractionError",
]
