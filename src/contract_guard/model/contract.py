"""Immutable structural model of a package's declared API surface."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple, TypeVar, Union

from ..utils.error_handling import ContractValidationError

Key = Tuple[str, str]
T = TypeVar("T")


class TypeKind(str, Enum):
    """Shape of a declared type."""
    STRUCT = "struct"
    ALIAS = "alias"


# Top-level collections of a Contract, in reporting order.
CATEGORIES = ("interfaces", "types", "functions", "variables", "constants")


def _require_name(value, what: str) -> None:
    if not isinstance(value, str) or not value:
        raise ContractValidationError(f"{what} must have a non-empty name, got {value!r}")


def _index_by(items: Iterable[T], key, what: str) -> Dict:
    """Build a key -> position lookup, rejecting duplicate keys."""
    index = {}
    for position, item in enumerate(items):
        item_key = key(item)
        if item_key in index:
            shown = ".".join(part for part in item_key if part) if isinstance(item_key, tuple) else item_key
            raise ContractValidationError(f"duplicate {what} '{shown}'", symbol=shown)
        index[item_key] = position
    return index


def _member_index(container: str, members, what: str) -> Dict[str, int]:
    index = _index_by(members, lambda m: (container, m.name), what)
    return {member_key[1]: position for member_key, position in index.items()}


def _sorted_tuple(items, key) -> tuple:
    return tuple(sorted(items or (), key=key))


@dataclass(frozen=True)
class Parameter:
    """A positional parameter or result: optional name plus type signature."""
    name: Optional[str]
    type: str

    def __post_init__(self):
        if self.name == "":
            object.__setattr__(self, "name", None)
        if not isinstance(self.type, str):
            raise ContractValidationError(f"parameter type must be a string, got {self.type!r}")

    def render(self) -> str:
        if self.name and self.type:
            return f"{self.name}: {self.type}"
        return self.name or self.type


Result = Parameter


def render_signature(parameters: Tuple[Parameter, ...], results: Tuple[Parameter, ...]) -> str:
    """Render a parameter/result list as ``(a: int, b: str) -> bool``."""
    text = "(" + ", ".join(p.render() for p in parameters) + ")"
    if len(results) == 1:
        text += f" -> {results[0].render()}"
    elif results:
        text += " -> (" + ", ".join(r.render() for r in results) + ")"
    return text


def type_sequence(parameters: Tuple[Parameter, ...]) -> Tuple[str, ...]:
    return tuple(p.type for p in parameters)


def name_sequence(parameters: Tuple[Parameter, ...]) -> Tuple[Optional[str], ...]:
    return tuple(p.name for p in parameters)


@dataclass(frozen=True)
class Method:
    """A callable member of an interface or struct type."""
    name: str
    parameters: Tuple[Parameter, ...] = ()
    results: Tuple[Parameter, ...] = ()
    doc: str = ""

    def __post_init__(self):
        _require_name(self.name, "method")
        object.__setattr__(self, "parameters", tuple(self.parameters))
        object.__setattr__(self, "results", tuple(self.results))
        object.__setattr__(self, "doc", self.doc or "")

    @property
    def signature(self) -> str:
        return self.name + render_signature(self.parameters, self.results)


@dataclass(frozen=True)
class Field:
    """A named member of a struct type."""
    name: str
    type: str
    tag: Optional[str] = None
    doc: str = ""

    def __post_init__(self):
        _require_name(self.name, "field")
        if not isinstance(self.type, str):
            raise ContractValidationError(f"field '{self.name}' type must be a string", symbol=self.name)
        object.__setattr__(self, "tag", self.tag or None)
        object.__setattr__(self, "doc", self.doc or "")

    @property
    def signature(self) -> str:
        text = f"{self.name}: {self.type}" if self.type else self.name
        if self.tag:
            text += f" = {self.tag}"
        return text


class _MemberContainer:
    """Shared lookups for declarations that own methods."""

    def get_method(self, name: str) -> Optional[Method]:
        position = self._method_index.get(name)
        return None if position is None else self.methods[position]

    def method_names(self) -> Tuple[str, ...]:
        return tuple(m.name for m in self.methods)


@dataclass(frozen=True)
class Interface(_MemberContainer):
    """A named set of method signatures."""
    name: str
    package: str = ""
    doc: str = ""
    methods: Tuple[Method, ...] = ()
    _method_index: Dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        _require_name(self.name, "interface")
        object.__setattr__(self, "doc", self.doc or "")
        object.__setattr__(self, "package", self.package or "")
        object.__setattr__(self, "methods", _sorted_tuple(self.methods, lambda m: m.name))
        object.__setattr__(self, "_method_index", _member_index(self.name, self.methods, "method"))

    @property
    def key(self) -> Key:
        return (self.package, self.name)


@dataclass(frozen=True)
class TypeDecl(_MemberContainer):
    """A declared struct or type alias."""
    name: str
    package: str = ""
    kind: TypeKind = TypeKind.STRUCT
    doc: str = ""
    fields: Tuple[Field, ...] = ()
    methods: Tuple[Method, ...] = ()
    underlying: Optional[str] = None
    _field_index: Dict[str, int] = field(init=False, repr=False, compare=False)
    _method_index: Dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        _require_name(self.name, "type")
        try:
            kind = TypeKind(self.kind)
        except ValueError:
            raise ContractValidationError(
                f"type '{self.name}' has unknown kind {self.kind!r}", symbol=self.name
            ) from None
        if kind is TypeKind.ALIAS and self.fields:
            raise ContractValidationError(f"alias type '{self.name}' cannot declare fields", symbol=self.name)
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "package", self.package or "")
        object.__setattr__(self, "doc", self.doc or "")
        object.__setattr__(self, "underlying", self.underlying or None)
        object.__setattr__(self, "fields", _sorted_tuple(self.fields, lambda f: f.name))
        object.__setattr__(self, "methods", _sorted_tuple(self.methods, lambda m: m.name))
        object.__setattr__(self, "_field_index", _member_index(self.name, self.fields, "field"))
        object.__setattr__(self, "_method_index", _member_index(self.name, self.methods, "method"))

    @property
    def key(self) -> Key:
        return (self.package, self.name)

    def get_field(self, name: str) -> Optional[Field]:
        position = self._field_index.get(name)
        return None if position is None else self.fields[position]

    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)


@dataclass(frozen=True)
class Function:
    """A package-level function."""
    name: str
    package: str = ""
    doc: str = ""
    parameters: Tuple[Parameter, ...] = ()
    results: Tuple[Parameter, ...] = ()

    def __post_init__(self):
        _require_name(self.name, "function")
        object.__setattr__(self, "package", self.package or "")
        object.__setattr__(self, "doc", self.doc or "")
        object.__setattr__(self, "parameters", tuple(self.parameters))
        object.__setattr__(self, "results", tuple(self.results))

    @property
    def key(self) -> Key:
        return (self.package, self.name)

    @property
    def signature(self) -> str:
        return self.name + render_signature(self.parameters, self.results)


@dataclass(frozen=True)
class Variable:
    """A package-level variable."""
    name: str
    package: str = ""
    type: str = ""
    value: Optional[str] = None
    doc: str = ""

    def __post_init__(self):
        _require_name(self.name, type(self).__name__.lower())
        object.__setattr__(self, "package", self.package or "")
        object.__setattr__(self, "type", self.type or "")
        object.__setattr__(self, "doc", self.doc or "")

    @property
    def key(self) -> Key:
        return (self.package, self.name)

    @property
    def signature(self) -> str:
        return f"{self.name}: {self.type}" if self.type else self.name


@dataclass(frozen=True)
class Constant(Variable):
    """A package-level constant; same shape as a variable."""


Entity = Union[Interface, TypeDecl, Function, Variable, Constant]


@dataclass(frozen=True)
class Contract:
    """The declared API surface of one package.

    Every collection is stored sorted by its ``(package, name)`` key, and a
    key -> position index is built once at construction, so two contracts
    built from the same declarations in any order compare equal.
    """
    package_name: str
    interfaces: Tuple[Interface, ...] = ()
    types: Tuple[TypeDecl, ...] = ()
    functions: Tuple[Function, ...] = ()
    variables: Tuple[Variable, ...] = ()
    constants: Tuple[Constant, ...] = ()
    version: Optional[str] = None
    _indexes: Dict[str, Dict[Key, int]] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not isinstance(self.package_name, str) or not self.package_name:
            raise ContractValidationError(f"contract must have a package name, got {self.package_name!r}")
        object.__setattr__(self, "version", self.version or None)
        indexes = {}
        for category in CATEGORIES:
            items = _sorted_tuple(getattr(self, category), lambda e: e.key)
            object.__setattr__(self, category, items)
            indexes[category] = _index_by(items, lambda e: e.key, category[:-1])
        object.__setattr__(self, "_indexes", indexes)

    def get(self, category: str, key: Key) -> Optional[Entity]:
        """Look up an entity of ``category`` by its ``(package, name)`` key."""
        position = self._indexes[category].get(key)
        return None if position is None else getattr(self, category)[position]

    def keys(self, category: str) -> Tuple[Key, ...]:
        return tuple(entity.key for entity in getattr(self, category))

    def counts(self) -> Dict[str, int]:
        return {category: len(getattr(self, category)) for category in CATEGORIES}

    @property
    def is_empty(self) -> bool:
        return not any(self.counts().values())
