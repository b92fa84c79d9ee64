"""Contract model and its canonical document encoding."""

from .contract import (
    CATEGORIES,
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
    render_signature,
)
from .serialization import (
    FORMAT_VERSION,
    contract_from_dict,
    contract_to_dict,
    dumps_contract,
    load_contract,
    loads_contract,
    save_contract,
)

__all__ = [
    "CATEGORIES",
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
    "render_signature",
    "FORMAT_VERSION",
    "contract_from_dict",
    "contract_to_dict",
    "dumps_contract",
    "load_contract",
    "loads_contract",
    "save_contract",
]
