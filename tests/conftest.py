"""Shared fixtures for contract-guard tests."""

import textwrap
from pathlib import Path

import pytest

from contract_guard.model.contract import (
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

SHOP_FILES = {
    "__init__.py": '''
        """Shop package."""
        __version__ = "1.2.0"

        from .models import User

        DEFAULT_TIMEOUT = "30s"
        """Default request timeout."""

        retries: int = 3


        def connect(host: str, port: int = 80) -> bool:
            """Connect to the shop."""
            return True


        def _helper(x):
            return x
    ''',
    "models.py": '''
        from dataclasses import dataclass, field
        from typing import Protocol, Union

        UserId = Union[int, str]


        class AuthService(Protocol):
            """Authenticates users."""

            def login(self, username: str, password: str) -> bool:
                ...

            def _reset(self) -> None:
                ...


        @dataclass
        class User:
            """A shop user."""

            id: str = field(metadata={"json": "id"})
            """Primary key."""
            name: str = ""
            _secret: str = ""

            def display(self) -> str:
                return self.name
    ''',
    "_private.py": '''
        def hidden():
            pass
    ''',
    "internal/__init__.py": '''
        def plumbing():
            pass
    ''',
    "tests/test_shop.py": '''
        def test_connect():
            assert True
    ''',
}


@pytest.fixture
def make_package(tmp_path):
    """Write a package to ``tmp_path`` from a mapping of relative path -> source."""

    def _make(name: str, files: dict) -> Path:
        root = tmp_path / name
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
        return root

    return _make


@pytest.fixture
def shop_package(make_package):
    """A small package exercising every declaration kind and filter."""
    return make_package("shop", SHOP_FILES)


def login_method(name: str = "Login", *params: Parameter) -> Method:
    params = params or (Parameter("username", "string"), Parameter("password", "string"))
    return Method(name, params, (Parameter(None, "bool"), Parameter(None, "error")))


@pytest.fixture
def auth_contract():
    """Contract with one interface, a struct, an alias, a function and values."""
    return Contract(
        package_name="auth",
        version="1.0.0",
        interfaces=[
            Interface("AuthService", "auth", "Authenticates users.", [login_method()]),
        ],
        types=[
            TypeDecl("User", "auth", TypeKind.STRUCT, "A user.", fields=[
                Field("ID", "string", tag='json:"id"'),
                Field("Name", "string", tag='json:"name"'),
            ]),
            TypeDecl("Token", "auth", TypeKind.ALIAS, underlying="string"),
        ],
        functions=[
            Function("NewService", "auth", "Creates a service.",
                     [Parameter("cfg", "Config")], [Parameter(None, "AuthService")]),
        ],
        variables=[Variable("Registry", "auth", "map[string]string")],
        constants=[Constant("DefaultTimeout", "auth", "string", '"30s"')],
    )
