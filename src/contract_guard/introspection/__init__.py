"""Contract extraction for contract-guard.

This module reads a package's source through a language adapter and builds
the Contract describing its declared API surface.
"""

from .adapter import Declaration, DeclarationKind, MemberDeclaration, ReExport, SourceAdapter
from .python_adapter import PythonSourceAdapter
from .api_extractor import ContractExtractor, ExtractionOptions

__all__ = [
    "Declaration",
    "DeclarationKind",
    "MemberDeclaration",
    "ReExport",
    "SourceAdapter",
    "PythonSourceAdapter",
    "ContractExtractor",
    "ExtractionOptions",
]
