"""API contract extraction from source packages."""

import importlib.util
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union
import logging

from .adapter import Declaration, DeclarationKind, ReExport, SourceAdapter
from .python_adapter import PythonSourceAdapter
from ..model.contract import (
    Constant,
    Contract,
    Field,
    Function,
    Interface,
    Method,
    Parameter,
    TypeDecl,
    TypeKind,
    Variable,
)
from ..utils.error_handling import ContractValidationError, ExtractionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionOptions:
    """Which declarations the extractor admits into a contract."""
    include_private: bool = False
    include_tests: bool = False
    include_internal: bool = False
    max_workers: int = 1

    def __post_init__(self):
        if not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise ValueError(f"max_workers must be a positive integer, got {self.max_workers!r}")


class ContractExtractor:
    """Builds a Contract from a source package.

    The extractor only talks to its SourceAdapter, so supporting another
    source language means writing another adapter.
    """

    def __init__(self, options: Optional[ExtractionOptions] = None, adapter: Optional[SourceAdapter] = None):
        """Initialize the contract extractor.

        Args:
            options: Extraction options; defaults admit exported, non-test,
                non-internal declarations only.
            adapter: Source adapter; defaults to the Python adapter.
        """
        self.options = options or ExtractionOptions()
        self.adapter = adapter or PythonSourceAdapter()

    def extract(self, package_ref: Union[str, Path]) -> Contract:
        """Extract the contract of a package.

        Args:
            package_ref: A directory, a single source file, or an importable
                package name.

        Returns:
            The extracted contract.

        Raises:
            ExtractionError: If the package cannot be resolved or any of its
                files cannot be read or parsed.
        """
        path = Path(package_ref)
        if path.exists():
            return self.extract_from_directory(path)
        return self.extract_from_package(str(package_ref))

    def extract_from_package(self, package_name: str) -> Contract:
        """Extract the contract of an importable package without importing it."""
        try:
            spec = importlib.util.find_spec(package_name)
        except (ImportError, ValueError) as e:
            raise ExtractionError(package_name, f"package cannot be resolved: {e}") from e
        if spec is None:
            raise ExtractionError(package_name, "package cannot be resolved")

        if spec.submodule_search_locations:
            root = Path(next(iter(spec.submodule_search_locations)))
        elif spec.origin and spec.origin not in ("built-in", "frozen"):
            root = Path(spec.origin)
        else:
            raise ExtractionError(package_name, "package has no source on disk")

        logger.debug(f"Resolved {package_name} to {root}")
        return self.extract_from_directory(root)

    def extract_from_directory(self, root: Union[str, Path]) -> Contract:
        """Extract the contract of the package rooted at ``root``."""
        root = Path(root).resolve()
        if not root.exists():
            raise ExtractionError(str(root), "path does not exist")

        sources = self._select_sources(root)
        if not sources:
            raise ExtractionError(str(root), f"no {self.adapter.name} source files found")

        declarations = self._parse_sources(root, sources)
        package_name = self.adapter.package_name(root)

        try:
            contract = self._build_contract(package_name, declarations, self.adapter.package_version(root))
        except ContractValidationError as e:
            raise ExtractionError(str(root), e.message) from e

        counts = ", ".join(f"{n} {category}" for category, n in contract.counts().items())
        logger.info(f"API extraction completed for {package_name}: {counts}")
        return contract

    def _select_sources(self, root: Path) -> List[Tuple[Path, str]]:
        selected = []
        for path in self.adapter.iter_source_files(root):
            relative = path.relative_to(root) if root.is_dir() else Path(path.name)
            if not self.options.include_tests and self.adapter.is_test_file(relative):
                logger.debug(f"Skipping test source {relative}")
                continue
            if not self.options.include_internal and self.adapter.is_internal(relative):
                logger.debug(f"Skipping internal source {relative}")
                continue
            selected.append((path, self.adapter.module_name(root, path)))
        return selected

    def _parse_one(self, root: Path, source: Tuple[Path, str]) -> List[Union[Declaration, ReExport]]:
        path, module = source
        try:
            return self.adapter.parse_file(path, module)
        except SyntaxError as e:
            raise ExtractionError(str(root), f"{path}:{e.lineno}: {e.msg}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise ExtractionError(str(root), f"cannot read {path}: {e}") from e

    def _parse_sources(self, root: Path, sources: List[Tuple[Path, str]]) -> List[Declaration]:
        """Parse every source; results keep the order of ``sources``.

        Names a module publishes through ``__all__`` after importing them are
        resolved to the declarations they refer to.
        """
        if self.options.max_workers > 1 and len(sources) > 1:
            with ThreadPoolExecutor(max_workers=self.options.max_workers) as executor:
                per_file = list(executor.map(lambda s: self._parse_one(root, s), sources))
        else:
            per_file = [self._parse_one(root, s) for s in sources]
        parsed = [item for items in per_file for item in items]
        return self._resolve_reexports(parsed)

    def _resolve_reexports(self, parsed: List[Union[Declaration, ReExport]]) -> List[Declaration]:
        """Admit re-exported private declarations under the module that publishes them."""
        declarations = [item for item in parsed if isinstance(item, Declaration)]
        defined = {(d.package, d.name): d for d in declarations}
        links = {(r.package, r.name): r for r in parsed if isinstance(r, ReExport)}

        for key in sorted(links):
            link = links[key]
            if not link.exported or key in defined:
                continue
            target, seen = None, set()
            origin = (link.origin_package, link.origin_name)
            while origin not in seen:
                seen.add(origin)
                if origin in defined:
                    target = defined[origin]
                    break
                if origin not in links:
                    break
                origin = (links[origin].origin_package, links[origin].origin_name)

            if target is None:
                logger.debug(f"Re-exported name {link.package}.{link.name} does not resolve to a parsed declaration")
                continue
            if not target.exported:
                declarations.append(replace(target, name=link.name, package=link.package, exported=True))
        return declarations

    def _admit(self, exported: bool) -> bool:
        return exported or self.options.include_private

    def _build_contract(self, package_name: str, declarations: Iterable[Declaration],
                        version: Optional[str]) -> Contract:
        buckets: Dict[DeclarationKind, Dict[Tuple[str, str], object]] = {kind: {} for kind in DeclarationKind}

        for declaration in declarations:
            if not self._admit(declaration.exported):
                continue
            buckets[declaration.kind][(declaration.package, declaration.name)] = self._to_entity(declaration)

        types = list(buckets[DeclarationKind.STRUCT].values()) + list(buckets[DeclarationKind.ALIAS].values())
        return Contract(
            package_name=package_name,
            interfaces=buckets[DeclarationKind.INTERFACE].values(),
            types=types,
            functions=buckets[DeclarationKind.FUNCTION].values(),
            variables=buckets[DeclarationKind.VARIABLE].values(),
            constants=buckets[DeclarationKind.CONSTANT].values(),
            version=version,
        )

    def _to_entity(self, declaration: Declaration):
        kind = declaration.kind
        methods = [
            Method(name=m.name, parameters=m.parameters, results=m.results, doc=m.doc)
            for m in declaration.members
            if not m.is_field and self._admit(m.exported)
        ]

        if kind is DeclarationKind.INTERFACE:
            # Properties and annotated attributes of an interface are accessors returning their type.
            accessors = [
                Method(name=m.name, results=(Parameter(None, m.type_signature),) if m.type_signature else (),
                       doc=m.doc)
                for m in declaration.members
                if m.is_field and self._admit(m.exported)
            ]
            return Interface(name=declaration.name, package=declaration.package,
                             doc=declaration.doc, methods=methods + accessors)
        if kind is DeclarationKind.STRUCT:
            fields = [
                Field(name=m.name, type=m.type_signature, tag=m.tag, doc=m.doc)
                for m in declaration.members
                if m.is_field and self._admit(m.exported)
            ]
            return TypeDecl(name=declaration.name, package=declaration.package, kind=TypeKind.STRUCT,
                            doc=declaration.doc, fields=fields, methods=methods)
        if kind is DeclarationKind.ALIAS:
            return TypeDecl(name=declaration.name, package=declaration.package, kind=TypeKind.ALIAS,
                            doc=declaration.doc, underlying=declaration.underlying)
        if kind is DeclarationKind.FUNCTION:
            return Function(name=declaration.name, package=declaration.package, doc=declaration.doc,
                            parameters=declaration.parameters, results=declaration.results)

        value_cls = Constant if kind is DeclarationKind.CONSTANT else Variable
        return value_cls(name=declaration.name, package=declaration.package,
                         type=declaration.type_signature, value=declaration.value, doc=declaration.doc)
