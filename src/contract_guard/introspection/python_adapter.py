"""Python source adapter built on the standard library ``ast`` module.

Source files are parsed, never imported, so extracting a contract does not
execute any code from the analysed package.
"""

import ast
import re
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple, Union
import logging

from .adapter import Declaration, DeclarationKind, MemberDeclaration, ReExport, SourceAdapter
from ..model.contract import Parameter

logger = logging.getLogger(__name__)

CONSTANT_NAME = re.compile(r"^_?[A-Z][A-Z0-9_]*$")

INTERFACE_BASES = {"Protocol", "ABC"}
INTERFACE_METACLASSES = {"ABCMeta"}
ENUM_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"}
TAG_CALLS = {"field", "Field", "ib", "attrib", "PrivateAttr"}
TYPING_ALIAS_BASES = {
    "Union", "Optional", "Callable", "Literal", "Annotated",
    "Dict", "List", "Tuple", "Set", "FrozenSet", "Type",
    "Mapping", "MutableMapping", "Sequence", "Iterable", "Iterator",
}
TYPE_PARAMETER_CALLS = {"TypeVar", "ParamSpec", "TypeVarTuple"}
LITERAL_TYPES = {
    ast.List: "list", ast.ListComp: "list",
    ast.Tuple: "tuple",
    ast.Dict: "dict", ast.DictComp: "dict",
    ast.Set: "set", ast.SetComp: "set",
    ast.JoinedStr: "str",
}
BUILTIN_CONSTRUCTORS = {"int", "float", "str", "bytes", "bool", "list", "dict", "set", "frozenset", "tuple"}


def _last_name(node: ast.AST) -> str:
    """Last dotted component of a name, attribute or subscripted generic."""
    if isinstance(node, ast.Subscript):
        node = node.value
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return ""


def _annotation(node: Optional[ast.AST]) -> str:
    return ast.unparse(node) if node is not None else ""


def _is_public_name(name: str) -> bool:
    if name.startswith("__") and name.endswith("__"):
        return True
    return not name.startswith("_")


def _literal_type(value: Optional[ast.AST]) -> str:
    """Best-effort type of an assigned expression, ``""`` when unknown."""
    if value is None:
        return ""
    if isinstance(value, ast.Constant):
        return "None" if value.value is None else type(value.value).__name__
    if isinstance(value, ast.UnaryOp) and isinstance(value.operand, ast.Constant):
        return type(value.operand.value).__name__
    for node_type, name in LITERAL_TYPES.items():
        if isinstance(value, node_type):
            return name
    if isinstance(value, ast.Call) and isinstance(value.func, ast.Name) and value.func.id in BUILTIN_CONSTRUCTORS:
        return value.func.id
    return ""


def _attribute_docstring(body: Sequence[ast.stmt], position: int) -> str:
    """The string literal directly following ``body[position]``, if any."""
    if position + 1 < len(body):
        following = body[position + 1]
        if (isinstance(following, ast.Expr) and isinstance(following.value, ast.Constant)
                and isinstance(following.value.value, str)):
            return following.value.value
    return ""


def _convert_arguments(arguments: ast.arguments, drop_first: bool) -> Tuple[Parameter, ...]:
    """Flatten an argument list into positional Parameters.

    ``/`` and bare ``*`` separators are kept as unnamed markers because moving
    a parameter across them changes how callers may bind it.
    """
    positional = list(arguments.posonlyargs) + list(arguments.args)
    posonly_count = len(arguments.posonlyargs)
    if drop_first and positional:
        positional = positional[1:]
        posonly_count = max(posonly_count - 1, 0)

    # A bare ``/`` right after a dropped ``self`` still makes the first slot positional-only.
    parameters = [Parameter(None, "/")] if arguments.posonlyargs and not posonly_count else []
    for position, arg in enumerate(positional):
        parameters.append(Parameter(arg.arg, _annotation(arg.annotation)))
        if posonly_count and position == posonly_count - 1:
            parameters.append(Parameter(None, "/"))

    if arguments.vararg is not None:
        parameters.append(Parameter(arguments.vararg.arg, "*" + _annotation(arguments.vararg.annotation)))
    elif arguments.kwonlyargs:
        parameters.append(Parameter(None, "*"))

    for arg in arguments.kwonlyargs:
        parameters.append(Parameter(arg.arg, _annotation(arg.annotation)))

    if arguments.kwarg is not None:
        parameters.append(Parameter(arguments.kwarg.arg, "**" + _annotation(arguments.kwarg.annotation)))

    return tuple(parameters)


def _convert_results(node) -> Tuple[Parameter, ...]:
    returns = _annotation(node.returns)
    if isinstance(node, ast.AsyncFunctionDef):
        return (Parameter(None, f"Awaitable[{returns or 'Any'}]"),)
    if returns:
        return (Parameter(None, returns),)
    return ()


def _decorator_names(node) -> Set[str]:
    return {_last_name(d.func if isinstance(d, ast.Call) else d) for d in node.decorator_list}


class _ModuleParser:
    """Turns the body of one parsed module into Declarations."""

    def __init__(self, source: str, module: str, private_module: bool, is_package: bool = False):
        self.source = source
        self.module = module
        self.private_module = private_module
        self.is_package = is_package
        self.exports: Optional[Set[str]] = None
        self.declarations: Dict[str, Declaration] = {}
        self.reexports: Dict[str, ReExport] = {}

    def parse(self, tree: ast.Module) -> List[Union[Declaration, ReExport]]:
        self.exports = self._find_exports(tree.body)
        self._visit_block(tree.body)
        return list(self.declarations.values()) + list(self.reexports.values())

    def _exported(self, name: str) -> bool:
        if self.private_module or not _is_public_name(name):
            return False
        return self.exports is None or name in self.exports

    def _find_exports(self, body: Sequence[ast.stmt]) -> Optional[Set[str]]:
        exports = None
        for node in body:
            targets, value = [], None
            if isinstance(node, ast.Assign):
                targets, value = node.targets, node.value
            elif isinstance(node, (ast.AnnAssign, ast.AugAssign)):
                targets, value = [node.target], node.value
            if not any(isinstance(t, ast.Name) and t.id == "__all__" for t in targets):
                continue
            if not isinstance(value, (ast.List, ast.Tuple)):
                continue
            names = {e.value for e in value.elts if isinstance(e, ast.Constant) and isinstance(e.value, str)}
            if isinstance(node, ast.AugAssign) and exports is not None:
                exports |= names
            else:
                exports = names
        return exports

    def _add(self, declaration: Declaration) -> None:
        # Rebinding a name replaces the earlier definition or import.
        self.reexports.pop(declaration.name, None)
        self.declarations.pop(declaration.name, None)
        self.declarations[declaration.name] = declaration

    def _import_origin(self, node: ast.ImportFrom) -> Optional[str]:
        """Absolute module an ``ImportFrom`` reads from, None if unresolvable."""
        if not node.level:
            return node.module
        parts = self.module.split(".")
        if not self.is_package:
            parts = parts[:-1]
        drop = node.level - 1
        if drop >= len(parts):
            return None
        base = ".".join(parts[:len(parts) - drop])
        return f"{base}.{node.module}" if node.module else base

    def _import(self, node: ast.ImportFrom) -> None:
        origin = self._import_origin(node)
        if origin is None:
            return
        for alias in node.names:
            if alias.name == "*":
                continue
            name = alias.asname or alias.name
            self.declarations.pop(name, None)
            self.reexports.pop(name, None)
            # Only names listed in __all__ are published by importing them.
            self.reexports[name] = ReExport(
                name=name,
                package=self.module,
                exported=self.exports is not None and self._exported(name),
                origin_package=origin,
                origin_name=alias.name,
            )

    def _visit_block(self, body: Sequence[ast.stmt]) -> None:
        for position, node in enumerate(body):
            if isinstance(node, ast.ClassDef):
                self._add(self._class(node))
            elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                if "overload" in _decorator_names(node):
                    continue
                self._add(Declaration(
                    kind=DeclarationKind.FUNCTION,
                    name=node.name,
                    package=self.module,
                    exported=self._exported(node.name),
                    doc=ast.get_docstring(node, clean=False) or "",
                    parameters=_convert_arguments(node.args, drop_first=False),
                    results=_convert_results(node),
                ))
            elif isinstance(node, ast.Assign):
                for target in node.targets:
                    if isinstance(target, ast.Name):
                        self._assignment(target.id, None, node.value, body, position)
            elif isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
                self._assignment(node.target.id, node.annotation, node.value, body, position)
            elif hasattr(ast, "TypeAlias") and isinstance(node, ast.TypeAlias):
                self._add(Declaration(
                    kind=DeclarationKind.ALIAS,
                    name=node.name.id,
                    package=self.module,
                    exported=self._exported(node.name.id),
                    doc=_attribute_docstring(body, position),
                    underlying=ast.unparse(node.value),
                ))
            elif isinstance(node, ast.ImportFrom):
                self._import(node)
            elif isinstance(node, ast.If):
                self._visit_block(node.body)
                self._visit_block(node.orelse)
            elif isinstance(node, ast.Try):
                self._visit_block(node.body)
                for handler in node.handlers:
                    self._visit_block(handler.body)
                self._visit_block(node.orelse)
                self._visit_block(node.finalbody)

    def _assignment(self, name, annotation, value, body, position) -> None:
        if name.startswith("__") and name.endswith("__"):
            return
        exported = self._exported(name)
        doc = _attribute_docstring(body, position)
        annotation_name = _last_name(annotation) if annotation is not None else ""
        call_name = _last_name(value.func) if isinstance(value, ast.Call) else ""

        if call_name in TYPE_PARAMETER_CALLS:
            return

        underlying = None
        if annotation_name == "TypeAlias" and value is not None:
            underlying = ast.unparse(value)
        elif call_name == "NewType" and len(value.args) >= 2:
            underlying = ast.unparse(value.args[1])
        elif annotation is None and isinstance(value, ast.Subscript) and _last_name(value) in TYPING_ALIAS_BASES:
            underlying = ast.unparse(value)

        if underlying is not None:
            self._add(Declaration(
                kind=DeclarationKind.ALIAS, name=name, package=self.module,
                exported=exported, doc=doc, underlying=underlying,
            ))
            return

        is_final = annotation_name == "Final"
        if is_final:
            inner = annotation.slice if isinstance(annotation, ast.Subscript) else None
            type_signature = _annotation(inner) or _literal_type(value)
        else:
            type_signature = _annotation(annotation) or _literal_type(value)

        kind = DeclarationKind.CONSTANT if is_final or CONSTANT_NAME.match(name) else DeclarationKind.VARIABLE
        self._add(Declaration(
            kind=kind,
            name=name,
            package=self.module,
            exported=exported,
            doc=doc,
            type_signature=type_signature,
            value=ast.unparse(value) if value is not None else None,
        ))

    def _class(self, node: ast.ClassDef) -> Declaration:
        base_names = {_last_name(base) for base in node.bases}
        metaclasses = {_last_name(k.value) for k in node.keywords if k.arg == "metaclass"}
        is_interface = bool(base_names & INTERFACE_BASES or metaclasses & INTERFACE_METACLASSES)
        is_enum = bool(base_names & ENUM_BASES)

        members: Dict[str, MemberDeclaration] = {}
        for position, child in enumerate(node.body):
            member = None
            if isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef)):
                member = self._method(child)
            elif isinstance(child, ast.AnnAssign) and isinstance(child.target, ast.Name):
                member = self._field(child.target.id, _annotation(child.annotation), child.value,
                                     _attribute_docstring(node.body, position))
            elif isinstance(child, ast.Assign) and is_enum:
                for target in child.targets:
                    if isinstance(target, ast.Name) and not target.id.startswith("_"):
                        members[target.id] = MemberDeclaration(
                            name=target.id,
                            exported=True,
                            is_field=True,
                            doc=_attribute_docstring(node.body, position),
                            type_signature=node.name,
                            tag=ast.unparse(child.value),
                        )
            if member is not None:
                members.pop(member.name, None)
                members[member.name] = member

        return Declaration(
            kind=DeclarationKind.INTERFACE if is_interface else DeclarationKind.STRUCT,
            name=node.name,
            package=self.module,
            exported=self._exported(node.name),
            doc=ast.get_docstring(node, clean=False) or "",
            members=tuple(members.values()),
        )

    def _method(self, node) -> Optional[MemberDeclaration]:
        decorators = _decorator_names(node)
        if "overload" in decorators or decorators & {"setter", "deleter"}:
            return None
        doc = ast.get_docstring(node, clean=False) or ""
        if decorators & {"property", "cached_property"}:
            return MemberDeclaration(
                name=node.name,
                exported=_is_public_name(node.name),
                is_field=True,
                doc=doc,
                type_signature=_annotation(node.returns),
            )
        return MemberDeclaration(
            name=node.name,
            exported=_is_public_name(node.name),
            doc=doc,
            parameters=_convert_arguments(node.args, drop_first="staticmethod" not in decorators),
            results=_convert_results(node),
        )

    def _field(self, name: str, type_signature: str, value, doc: str) -> MemberDeclaration:
        tag = None
        if isinstance(value, ast.Call) and _last_name(value.func) in TAG_CALLS:
            tag = ast.get_source_segment(self.source, value) or ast.unparse(value)
        return MemberDeclaration(
            name=name,
            exported=_is_public_name(name) and not name.startswith("__"),
            is_field=True,
            doc=doc,
            type_signature=type_signature,
            tag=tag,
        )


class PythonSourceAdapter(SourceAdapter):
    """Reads declarations out of Python packages."""

    name = "python"

    TEST_DIRECTORIES = {"tests", "test"}
    INTERNAL_SEGMENTS = {"internal", "_internal"}
    SKIPPED_DIRECTORIES = {"__pycache__", "build", "dist", "node_modules"}

    def iter_source_files(self, root: Path) -> Iterator[Path]:
        if root.is_file():
            yield root
            return
        for path in sorted(root.rglob("*.py")):
            directories = path.relative_to(root).parts[:-1]
            if any(part.startswith(".") or part in self.SKIPPED_DIRECTORIES for part in directories):
                continue
            yield path

    def package_name(self, root: Path) -> str:
        return root.stem if root.is_file() else root.name

    def module_name(self, root: Path, path: Path) -> str:
        if root.is_file():
            return root.stem
        parts = [root.name] + list(path.relative_to(root).with_suffix("").parts)
        if parts[-1] == "__init__":
            parts.pop()
        return ".".join(parts)

    def is_test_file(self, relative_path: Path) -> bool:
        name = relative_path.name
        if name.startswith("test_") or name.endswith("_test.py") or name == "conftest.py":
            return True
        return any(part in self.TEST_DIRECTORIES for part in relative_path.parts[:-1])

    def is_internal(self, relative_path: Path) -> bool:
        segments = list(relative_path.parts[:-1]) + [relative_path.stem]
        return any(part in self.INTERNAL_SEGMENTS for part in segments)

    def _is_private_module(self, module: str) -> bool:
        segments = module.split(".")[1:]
        return any(not _is_public_name(part) and part not in self.INTERNAL_SEGMENTS for part in segments)

    def parse_file(self, path: Path, module: str) -> List[Union[Declaration, ReExport]]:
        source = path.read_text(encoding="utf-8")
        tree = ast.parse(source, filename=str(path))
        parser = _ModuleParser(source, module, self._is_private_module(module), is_package=path.name == "__init__.py")
        declarations = parser.parse(tree)
        logger.debug(f"Parsed {len(declarations)} declarations from {path}")
        return declarations

    def package_version(self, root: Path) -> Optional[str]:
        init_file = root / "__init__.py" if root.is_dir() else root
        if not init_file.is_file():
            return None
        try:
            tree = ast.parse(init_file.read_text(encoding="utf-8"))
        except (OSError, SyntaxError, UnicodeDecodeError):
            return None
        for node in tree.body:
            if (isinstance(node, ast.Assign) and isinstance(node.value, ast.Constant)
                    and isinstance(node.value.value, str)
                    and any(isinstance(t, ast.Name) and t.id == "__version__" for t in node.targets)):
                return node.value.value
        return None
