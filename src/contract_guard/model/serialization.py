"""Canonical encoding of contracts to and from contract documents.

A contract document is a plain JSON (or YAML) mapping. Encoding is canonical:
keys are sorted, every collection is emitted in the contract's sorted order,
and optional attributes that are absent are omitted, so the same contract
always serializes to the same bytes.

Decoding validates the document structure. Unknown keys are ignored and
missing optional attributes fall back to their defaults; anything else
raises ContractFormatError naming the offending location.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union
import logging

import yaml

from .contract import (
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
from ..utils.error_handling import ContractFormatError, ContractValidationError

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0"
YAML_SUFFIXES = (".yaml", ".yml")


# Encoding

def _parameters_to_list(parameters) -> List[Dict[str, str]]:
    encoded = []
    for parameter in parameters:
        item = {"type": parameter.type}
        if parameter.name:
            item["name"] = parameter.name
        encoded.append(item)
    return encoded


def _method_to_dict(method: Method) -> Dict[str, Any]:
    return {
        "name": method.name,
        "doc": method.doc,
        "parameters": _parameters_to_list(method.parameters),
        "results": _parameters_to_list(method.results),
    }


def _field_to_dict(field: Field) -> Dict[str, Any]:
    encoded = {"name": field.name, "type": field.type, "doc": field.doc}
    if field.tag is not None:
        encoded["tag"] = field.tag
    return encoded


def _value_to_dict(value: Variable) -> Dict[str, Any]:
    encoded = {"name": value.name, "package": value.package, "type": value.type, "doc": value.doc}
    if value.value is not None:
        encoded["value"] = value.value
    return encoded


def contract_to_dict(contract: Contract) -> Dict[str, Any]:
    """Convert a contract to its document form."""
    document = {
        "format_version": FORMAT_VERSION,
        "package_name": contract.package_name,
        "interfaces": [
            {
                "name": interface.name,
                "package": interface.package,
                "doc": interface.doc,
                "methods": [_method_to_dict(m) for m in interface.methods],
            }
            for interface in contract.interfaces
        ],
        "types": [],
        "functions": [
            {
                "name": function.name,
                "package": function.package,
                "doc": function.doc,
                "parameters": _parameters_to_list(function.parameters),
                "results": _parameters_to_list(function.results),
            }
            for function in contract.functions
        ],
        "variables": [_value_to_dict(v) for v in contract.variables],
        "constants": [_value_to_dict(c) for c in contract.constants],
    }
    if contract.version is not None:
        document["version"] = contract.version

    for type_decl in contract.types:
        encoded = {
            "name": type_decl.name,
            "package": type_decl.package,
            "kind": type_decl.kind.value,
            "doc": type_decl.doc,
            "fields": [_field_to_dict(f) for f in type_decl.fields],
            "methods": [_method_to_dict(m) for m in type_decl.methods],
        }
        if type_decl.underlying is not None:
            encoded["underlying"] = type_decl.underlying
        document["types"].append(encoded)

    return document


def dumps_contract(contract: Contract) -> str:
    """Serialize a contract to canonical JSON text (with trailing newline)."""
    return json.dumps(contract_to_dict(contract), indent=2, sort_keys=True, ensure_ascii=False) + "\n"


# Decoding

class _DocumentReader:
    """Walks a contract document, tracking the location for error messages."""

    def __init__(self, source: Optional[str] = None):
        self.source = source

    def fail(self, violation: str, location: Optional[str] = None):
        raise ContractFormatError(violation, location=location, source=self.source)

    def mapping(self, value: Any, location: str) -> Mapping[str, Any]:
        if not isinstance(value, Mapping):
            self.fail(f"expected an object, got {type(value).__name__}", location)
        return value

    def sequence(self, data: Mapping[str, Any], key: str, location: str) -> List[Any]:
        value = data.get(key)
        if value is None:
            return []
        if not isinstance(value, list):
            self.fail(f"'{key}' must be a list, got {type(value).__name__}", location)
        return value

    def name(self, data: Mapping[str, Any], location: str) -> str:
        value = data.get("name")
        if not isinstance(value, str) or not value:
            self.fail("'name' must be a non-empty string", location)
        return value

    def text(self, data: Mapping[str, Any], key: str, location: str, required: bool = False) -> Optional[str]:
        value = data.get(key)
        if value is None:
            if required:
                self.fail(f"'{key}' is required", location)
            return None
        if not isinstance(value, str):
            self.fail(f"'{key}' must be a string, got {type(value).__name__}", location)
        return value

    def parameters(self, data: Mapping[str, Any], key: str, location: str) -> List[Parameter]:
        decoded = []
        for position, raw in enumerate(self.sequence(data, key, location)):
            where = f"{location}.{key}[{position}]"
            item = self.mapping(raw, where)
            decoded.append(Parameter(
                name=self.text(item, "name", where),
                type=self.text(item, "type", where, required=True),
            ))
        return decoded

    def method(self, raw: Any, location: str) -> Method:
        item = self.mapping(raw, location)
        return Method(
            name=self.name(item, location),
            parameters=self.parameters(item, "parameters", location),
            results=self.parameters(item, "results", location),
            doc=self.text(item, "doc", location) or "",
        )

    def methods(self, data: Mapping[str, Any], location: str) -> List[Method]:
        return [
            self.method(raw, f"{location}.methods[{position}]")
            for position, raw in enumerate(self.sequence(data, "methods", location))
        ]

    def field(self, raw: Any, location: str) -> Field:
        item = self.mapping(raw, location)
        return Field(
            name=self.name(item, location),
            type=self.text(item, "type", location, required=True),
            tag=self.text(item, "tag", location),
            doc=self.text(item, "doc", location) or "",
        )

    def interface(self, raw: Any, location: str) -> Interface:
        item = self.mapping(raw, location)
        return Interface(
            name=self.name(item, location),
            package=self.text(item, "package", location) or "",
            doc=self.text(item, "doc", location) or "",
            methods=self.methods(item, location),
        )

    def type_decl(self, raw: Any, location: str) -> TypeDecl:
        item = self.mapping(raw, location)
        kind = self.text(item, "kind", location) or TypeKind.STRUCT.value
        if kind not in {k.value for k in TypeKind}:
            self.fail(f"'kind' must be 'struct' or 'alias', got {kind!r}", location)
        return TypeDecl(
            name=self.name(item, location),
            package=self.text(item, "package", location) or "",
            kind=TypeKind(kind),
            doc=self.text(item, "doc", location) or "",
            fields=[
                self.field(f, f"{location}.fields[{position}]")
                for position, f in enumerate(self.sequence(item, "fields", location))
            ],
            methods=self.methods(item, location),
            underlying=self.text(item, "underlying", location),
        )

    def function(self, raw: Any, location: str) -> Function:
        item = self.mapping(raw, location)
        return Function(
            name=self.name(item, location),
            package=self.text(item, "package", location) or "",
            doc=self.text(item, "doc", location) or "",
            parameters=self.parameters(item, "parameters", location),
            results=self.parameters(item, "results", location),
        )

    def value(self, raw: Any, location: str, cls):
        item = self.mapping(raw, location)
        return cls(
            name=self.name(item, location),
            package=self.text(item, "package", location) or "",
            type=self.text(item, "type", location) or "",
            value=self.text(item, "value", location),
            doc=self.text(item, "doc", location) or "",
        )


def _check_format_version(reader: _DocumentReader, data: Mapping[str, Any]) -> None:
    version = data.get("format_version")
    if version is None:
        return
    if not isinstance(version, str):
        reader.fail("'format_version' must be a string", "format_version")
    major = version.split(".", 1)[0]
    if major != FORMAT_VERSION.split(".", 1)[0]:
        reader.fail(f"unsupported format version {version!r} (supported: {FORMAT_VERSION})", "format_version")


def contract_from_dict(data: Any, source: Optional[str] = None) -> Contract:
    """Build a contract from its document form.

    Args:
        data: Decoded contract document.
        source: Optional description of where the document came from,
            used in error messages.

    Returns:
        The validated contract.

    Raises:
        ContractFormatError: If the document violates the schema.
    """
    reader = _DocumentReader(source)
    data = reader.mapping(data, "<root>")
    _check_format_version(reader, data)

    package_name = data.get("package_name")
    if not isinstance(package_name, str) or not package_name:
        reader.fail("'package_name' must be a non-empty string", "package_name")

    def decode(category: str, decoder):
        return [
            decoder(raw, f"{category}[{position}]")
            for position, raw in enumerate(reader.sequence(data, category, category))
        ]

    try:
        return Contract(
            package_name=package_name,
            interfaces=decode("interfaces", reader.interface),
            types=decode("types", reader.type_decl),
            functions=decode("functions", reader.function),
            variables=decode("variables", lambda raw, loc: reader.value(raw, loc, Variable)),
            constants=decode("constants", lambda raw, loc: reader.value(raw, loc, Constant)),
            version=reader.text(data, "version", "version"),
        )
    except ContractValidationError as e:
        raise ContractFormatError(e.message, location=e.symbol, source=source) from e


def loads_contract(text: str, source: Optional[str] = None) -> Contract:
    """Parse a JSON contract document."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ContractFormatError(f"not valid JSON: {e}", source=source) from e
    return contract_from_dict(data, source=source)


def save_contract(contract: Contract, path: Union[str, Path]) -> Path:
    """Write a contract to ``path`` as JSON, or YAML for .yaml/.yml files."""
    path = Path(path)
    if path.suffix.lower() in YAML_SUFFIXES:
        content = yaml.safe_dump(contract_to_dict(contract), sort_keys=True, allow_unicode=True)
    else:
        content = dumps_contract(contract)

    with open(path, 'w', encoding='utf-8') as f:
        f.write(content)

    logger.info(f"Saved contract for {contract.package_name} to {path}")
    return path


def load_contract(path: Union[str, Path]) -> Contract:
    """Read a contract document from a JSON or YAML file."""
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    except OSError as e:
        raise ContractFormatError(f"cannot read file: {e.strerror or e}", source=str(path)) from e

    if path.suffix.lower() in YAML_SUFFIXES:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ContractFormatError(f"not valid YAML: {e}", source=str(path)) from e
        contract = contract_from_dict(data, source=str(path))
    else:
        contract = loads_contract(text, source=str(path))

    logger.debug(f"Loaded contract for {contract.package_name} from {path}")
    return contract
