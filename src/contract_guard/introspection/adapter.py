"""Source adapter abstraction used by the contract extractor.

An adapter knows one source language. It lists the source files of a package
and turns each file into a flat list of Declarations; the extractor never
sees parser-specific node types.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from ..model.contract import Parameter


class DeclarationKind(str, Enum):
    """Categories of top-level declarations an adapter can yield."""
    INTERFACE = "interface"
    STRUCT = "struct"
    ALIAS = "alias"
    FUNCTION = "function"
    VARIABLE = "variable"
    CONSTANT = "constant"


@dataclass(frozen=True)
class MemberDeclaration:
    """A method or field of a declared interface or struct."""
    name: str
    exported: bool
    is_field: bool = False
    doc: str = ""
    parameters: Tuple[Parameter, ...] = ()
    results: Tuple[Parameter, ...] = ()
    type_signature: str = ""
    tag: Optional[str] = None


@dataclass(frozen=True)
class Declaration:
    """A single declared symbol, as reported by a source adapter.

    Source positions are not recorded; contracts never compare them.
    """
    kind: DeclarationKind
    name: str
    package: str
    exported: bool
    doc: str = ""
    parameters: Tuple[Parameter, ...] = ()
    results: Tuple[Parameter, ...] = ()
    type_signature: str = ""
    value: Optional[str] = None
    underlying: Optional[str] = None
    members: Tuple[MemberDeclaration, ...] = ()


@dataclass(frozen=True)
class ReExport:
    """A name a module binds by importing it from another module.

    When the importing module publishes the name, the extractor admits the
    declaration it resolves to under the importing module.
    """
    name: str
    package: str
    exported: bool
    origin_package: str
    origin_name: str


class SourceAdapter(ABC):
    """Yields declarations from the source files of one language."""

    name = "abstract"

    @abstractmethod
    def iter_source_files(self, root: Path) -> Iterator[Path]:
        """Yield every source file below ``root``."""

    @abstractmethod
    def module_name(self, root: Path, path: Path) -> str:
        """Return the package/module that declarations in ``path`` belong to."""

    @abstractmethod
    def parse_file(self, path: Path, module: str) -> List[Union[Declaration, ReExport]]:
        """Parse one file into declarations and the names it re-exports.

        Raises:
            SyntaxError: If the file cannot be parsed.
            OSError, UnicodeDecodeError: If the file cannot be read.
        """

    def is_test_file(self, relative_path: Path) -> bool:
        """Whether ``relative_path`` only holds test declarations."""
        return False

    def is_internal(self, relative_path: Path) -> bool:
        """Whether ``relative_path`` lies in an internal-designated package."""
        return False

    def package_name(self, root: Path) -> str:
        return root.name

    def package_version(self, root: Path) -> Optional[str]:
        return None
