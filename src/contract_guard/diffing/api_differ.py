"""API contract difference detection."""

from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Union
import logging

from .change_classifier import (
    ADDED,
    DOCUMENTATION_CHANGED,
    KIND_CHANGED,
    PARAMETER_NAMES_CHANGED,
    REMOVED,
    SIGNATURE_CHANGED,
    TAG_CHANGED,
    TYPE_CHANGED,
    UNDERLYING_CHANGED,
    VALUE_CHANGED,
    Change,
    ChangeClassifier,
    ChangeKind,
    ChangeSet,
)
from ..model.contract import (
    CATEGORIES,
    Contract,
    Interface,
    TypeDecl,
    TypeKind,
    Variable,
    name_sequence,
    type_sequence,
)
from ..model.serialization import contract_from_dict
from ..utils.error_handling import ContractFormatError, DiffError

logger = logging.getLogger(__name__)

ContractInput = Union[Contract, Mapping[str, Any]]


@dataclass(frozen=True)
class DiffOptions:
    """Options controlling which differences are reported and how."""
    ignore_positions: bool = True
    ignore_comments: bool = False
    parameter_names_breaking: bool = False
    tag_changes_breaking: bool = False


def _describe_type(type_decl: TypeDecl) -> str:
    if type_decl.kind is TypeKind.ALIAS:
        return f"{type_decl.name} = {type_decl.underlying or ''}".rstrip()
    return type_decl.name


def _shared_root(old_contract: Contract, new_contract: Contract) -> str:
    """Package prefix symbols are reported relative to, ``""`` for full names.

    Relative names are only used when every symbol in both contracts lives
    under the shared package, otherwise ``a.b.c`` and ``b.c`` could collide.
    """
    root = old_contract.package_name
    if root != new_contract.package_name:
        return ""
    for contract in (old_contract, new_contract):
        for category in CATEGORIES:
            for package, _ in contract.keys(category):
                if package != root and not package.startswith(root + "."):
                    return ""
    return root


class _Comparison:
    """State of a single compare() call."""

    def __init__(self, classifier: ChangeClassifier, options: DiffOptions, root: str):
        self.classifier = classifier
        self.options = options
        self.root = root
        self.changes: List[Change] = []

    def symbol(self, package: str, name: str) -> str:
        if self.root and package == self.root:
            return name
        if self.root and package.startswith(self.root + "."):
            return f"{package[len(self.root) + 1:]}.{name}"
        return f"{package}.{name}" if package else name

    def emit(self, category: str, kind: ChangeKind, symbol: str, description: str,
             old: Optional[str] = None, new: Optional[str] = None) -> None:
        self.changes.append(self.classifier.change(category, kind, symbol, description, old, new))

    def compare_docs(self, category: str, kind: ChangeKind, symbol: str, old_doc: str, new_doc: str) -> None:
        if self.options.ignore_comments or old_doc == new_doc:
            return
        self.emit(category, kind, symbol, DOCUMENTATION_CHANGED, old_doc, new_doc)

    def compare_category(self, old: Contract, new: Contract, category: str, kind: ChangeKind,
                         describe: Callable[[Any], str], compare_shared: Callable) -> None:
        old_keys = set(old.keys(category))
        new_keys = set(new.keys(category))

        for key in sorted(old_keys - new_keys):
            self.emit(category, kind, self.symbol(*key), REMOVED, old=describe(old.get(category, key)))
        for key in sorted(new_keys - old_keys):
            self.emit(category, kind, self.symbol(*key), ADDED, new=describe(new.get(category, key)))
        for key in sorted(old_keys & new_keys):
            compare_shared(category, self.symbol(*key), old.get(category, key), new.get(category, key))

    def compare_callable(self, category: str, kind: ChangeKind, symbol: str, old, new) -> None:
        if (type_sequence(old.parameters) != type_sequence(new.parameters)
                or type_sequence(old.results) != type_sequence(new.results)):
            self.emit(category, kind, symbol, SIGNATURE_CHANGED, old.signature, new.signature)
        elif (name_sequence(old.parameters) != name_sequence(new.parameters)
                or name_sequence(old.results) != name_sequence(new.results)):
            self.emit(category, kind, symbol, PARAMETER_NAMES_CHANGED, old.signature, new.signature)
        self.compare_docs(category, kind, symbol, old.doc, new.doc)

    def compare_methods(self, category: str, container: str, old, new) -> None:
        old_names = set(old.method_names())
        new_names = set(new.method_names())

        for name in sorted(old_names - new_names):
            self.emit(category, ChangeKind.METHOD, f"{container}.{name}", REMOVED,
                      old=old.get_method(name).signature)
        for name in sorted(new_names - old_names):
            self.emit(category, ChangeKind.METHOD, f"{container}.{name}", ADDED,
                      new=new.get_method(name).signature)
        for name in sorted(old_names & new_names):
            self.compare_callable(category, ChangeKind.METHOD, f"{container}.{name}",
                                  old.get_method(name), new.get_method(name))

    def compare_interface(self, category: str, symbol: str, old: Interface, new: Interface) -> None:
        self.compare_docs(category, ChangeKind.INTERFACE, symbol, old.doc, new.doc)
        self.compare_methods(category, symbol, old, new)

    def compare_type(self, category: str, symbol: str, old: TypeDecl, new: TypeDecl) -> None:
        if old.kind is not new.kind:
            # Members of a struct and an alias are not comparable.
            self.emit(category, ChangeKind.TYPE, symbol, KIND_CHANGED, old.kind.value, new.kind.value)
            return

        if old.underlying != new.underlying:
            self.emit(category, ChangeKind.TYPE, symbol, UNDERLYING_CHANGED, old.underlying, new.underlying)
        self.compare_docs(category, ChangeKind.TYPE, symbol, old.doc, new.doc)

        old_fields = set(old.field_names())
        new_fields = set(new.field_names())
        for name in sorted(old_fields - new_fields):
            self.emit(category, ChangeKind.FIELD, f"{symbol}.{name}", REMOVED,
                      old=old.get_field(name).signature)
        for name in sorted(new_fields - old_fields):
            self.emit(category, ChangeKind.FIELD, f"{symbol}.{name}", ADDED,
                      new=new.get_field(name).signature)
        for name in sorted(old_fields & new_fields):
            old_field, new_field = old.get_field(name), new.get_field(name)
            field_symbol = f"{symbol}.{name}"
            if old_field.type != new_field.type:
                self.emit(category, ChangeKind.FIELD, field_symbol, TYPE_CHANGED, old_field.type, new_field.type)
            elif old_field.tag != new_field.tag:
                self.emit(category, ChangeKind.FIELD, field_symbol, TAG_CHANGED, old_field.tag, new_field.tag)
            self.compare_docs(category, ChangeKind.FIELD, field_symbol, old_field.doc, new_field.doc)

        self.compare_methods(category, symbol, old, new)

    def compare_function(self, category: str, symbol: str, old, new) -> None:
        self.compare_callable(category, ChangeKind.FUNCTION, symbol, old, new)

    def compare_value(self, kind: ChangeKind) -> Callable:
        def compare(category: str, symbol: str, old: Variable, new: Variable) -> None:
            if old.type != new.type:
                self.emit(category, kind, symbol, TYPE_CHANGED, old.type, new.type)
            elif old.value != new.value:
                self.emit(category, kind, symbol, VALUE_CHANGED, old.value, new.value)
            self.compare_docs(category, kind, symbol, old.doc, new.doc)
        return compare


class ContractDiffer:
    """Compares two contracts and reports classified changes.

    Symbols are matched by qualified name only, never by position, and the
    resulting ChangeSet is explicitly sorted, so declaration order and lookup
    order never influence the output.
    """

    def __init__(self, options: Optional[DiffOptions] = None):
        """Initialize the contract differ.

        Args:
            options: Diff options; the defaults ignore positions and report
                documentation changes.
        """
        self.options = options or DiffOptions()
        self.classifier = ChangeClassifier(
            parameter_names_breaking=self.options.parameter_names_breaking,
            tag_changes_breaking=self.options.tag_changes_breaking,
        )

    def compare(self, old: ContractInput, new: ContractInput) -> ChangeSet:
        """Compare two contracts.

        Args:
            old: Contract (or contract document) of the previous version.
            new: Contract (or contract document) of the new version.

        Returns:
            The ordered, deduplicated ChangeSet.

        Raises:
            DiffError: If either input is not a valid contract.
        """
        old_contract = self._coerce(old, "old")
        new_contract = self._coerce(new, "new")

        if not self.options.ignore_positions:
            logger.debug("Contracts carry no source positions; nothing extra to compare")

        comparison = _Comparison(self.classifier, self.options, _shared_root(old_contract, new_contract))

        comparison.compare_category(old_contract, new_contract, "interfaces", ChangeKind.INTERFACE,
                                    lambda i: i.name, comparison.compare_interface)
        comparison.compare_category(old_contract, new_contract, "types", ChangeKind.TYPE,
                                    _describe_type, comparison.compare_type)
        comparison.compare_category(old_contract, new_contract, "functions", ChangeKind.FUNCTION,
                                    lambda f: f.signature, comparison.compare_function)
        comparison.compare_category(old_contract, new_contract, "variables", ChangeKind.VARIABLE,
                                    lambda v: v.signature, comparison.compare_value(ChangeKind.VARIABLE))
        comparison.compare_category(old_contract, new_contract, "constants", ChangeKind.CONSTANT,
                                    lambda c: c.signature, comparison.compare_value(ChangeKind.CONSTANT))

        change_set = ChangeSet(
            changes=tuple(comparison.changes),
            package_name=new_contract.package_name,
            old_version=old_contract.version,
            new_version=new_contract.version,
        )
        logger.info(
            f"Contract comparison completed for {change_set.package_name}: "
            f"{len(change_set.breaking)} breaking, {len(change_set.additions)} additions, "
            f"{len(change_set.modifications)} modifications"
        )
        return change_set

    def _coerce(self, value: ContractInput, which: str) -> Contract:
        if isinstance(value, Contract):
            return value
        if isinstance(value, Mapping):
            try:
                return contract_from_dict(value, source=f"{which} contract")
            except ContractFormatError as e:
                where = f" at {e.location}" if e.location else ""
                raise DiffError(which, f"{e.violation}{where}") from e
        raise DiffError(which, f"expected a Contract or contract document, got {type(value).__name__}")
