"""Test contract comparison and severity classification."""

from dataclasses import replace

import pytest

from contract_guard.diffing import ChangeKind, ContractDiffer, DiffOptions, Severity
from contract_guard.model import (
    Contract,
    Field,
    Function,
    Method,
    Parameter,
    TypeDecl,
    TypeKind,
    contract_to_dict,
)
from contract_guard.utils.error_handling import DiffError


def entries(change_set):
    return [(c.severity, c.kind, c.symbol, c.description) for c in change_set]


def with_interface_methods(contract, *methods):
    interface = replace(contract.interfaces[0], methods=methods)
    return replace(contract, interfaces=(interface,))


def with_user_fields(contract, *fields):
    user = replace(contract.get("types", ("auth", "User")), fields=fields)
    others = [t for t in contract.types if t.name != "User"]
    return replace(contract, types=[user, *others])


@pytest.fixture
def differ():
    return ContractDiffer()


class TestScenarios:
    """End-to-end comparisons of small contracts."""

    def test_method_replaced(self, differ, auth_contract):
        """Removing a method is breaking, adding one is an addition."""
        results = (Parameter(None, "bool"), Parameter(None, "error"))
        new = with_interface_methods(
            auth_contract, Method("LoginWithOAuth", [Parameter("token", "string")], results)
        )

        change_set = differ.compare(auth_contract, new)

        assert entries(change_set) == [
            (Severity.BREAKING, ChangeKind.METHOD, "AuthService.Login", "removed"),
            (Severity.ADDITION, ChangeKind.METHOD, "AuthService.LoginWithOAuth", "added"),
        ]
        assert change_set[0].old == "Login(username: string, password: string) -> (bool, error)"
        assert change_set[1].new == "LoginWithOAuth(token: string) -> (bool, error)"

    def test_constant_value_change_is_modification(self, differ, auth_contract):
        """A constant value change with an unchanged type is not breaking."""
        timeout = replace(auth_contract.constants[0], value='"60s"')
        new = replace(auth_contract, constants=[timeout])

        change_set = differ.compare(auth_contract, new)

        assert entries(change_set) == [
            (Severity.MODIFICATION, ChangeKind.CONSTANT, "DefaultTimeout", "value changed"),
        ]
        assert (change_set[0].old, change_set[0].new) == ('"30s"', '"60s"')
        assert not change_set.has_breaking_changes

    def test_field_type_change_is_breaking(self, differ, auth_contract):
        """Changing a field's type breaks consumers."""
        new = with_user_fields(
            auth_contract,
            Field("ID", "int", tag='json:"id"'),
            Field("Name", "string", tag='json:"name"'),
        )

        change_set = differ.compare(auth_contract, new)

        assert entries(change_set) == [
            (Severity.BREAKING, ChangeKind.FIELD, "User.ID", "type changed"),
        ]
        assert (change_set[0].old, change_set[0].new) == ("string", "int")

    def test_ignore_comments_suppresses_doc_edits(self, auth_contract):
        """Documentation-only edits vanish when comments are ignored."""
        service = auth_contract.interfaces[0]
        login = replace(service.get_method("Login"), doc="Signs a user in.")
        interface = replace(service, doc="Authenticates callers.", methods=[login])
        user = auth_contract.get("types", ("auth", "User"))
        user = replace(user, doc="A person.",
                       fields=[replace(user.get_field("ID"), doc="Primary key."), user.get_field("Name")])
        token = auth_contract.get("types", ("auth", "Token"))
        new = replace(
            auth_contract,
            interfaces=[interface],
            types=[user, token],
            functions=[replace(auth_contract.functions[0], doc="")],
            variables=[replace(auth_contract.variables[0], doc="Known services.")],
            constants=[replace(auth_contract.constants[0], doc="Request timeout.")],
        )

        change_set = ContractDiffer().compare(auth_contract, new)

        assert [(c.kind, c.symbol) for c in change_set] == [
            (ChangeKind.INTERFACE, "AuthService"),
            (ChangeKind.METHOD, "AuthService.Login"),
            (ChangeKind.TYPE, "User"),
            (ChangeKind.FIELD, "User.ID"),
            (ChangeKind.FUNCTION, "NewService"),
            (ChangeKind.VARIABLE, "Registry"),
            (ChangeKind.CONSTANT, "DefaultTimeout"),
        ]
        assert {c.description for c in change_set} == {"documentation changed"}
        quiet = ContractDiffer(DiffOptions(ignore_comments=True))
        assert len(quiet.compare(auth_contract, new)) == 0


class TestProperties:
    """Properties that hold for any pair of contracts."""

    def test_comparing_contract_with_itself_is_empty(self, differ, auth_contract):
        assert len(differ.compare(auth_contract, auth_contract)) == 0
        assert differ.compare(auth_contract, auth_contract).suggest_version_bump()["suggested_bump"] is None

    def test_removals_and_additions_mirror(self, differ, auth_contract):
        """Every removal in one direction is an addition in the other."""
        smaller = replace(auth_contract, functions=[], variables=[])
        smaller = with_interface_methods(smaller)

        forward = differ.compare(auth_contract, smaller)
        backward = differ.compare(smaller, auth_contract)

        removed = {(c.kind, c.symbol) for c in forward if c.description == "removed"}
        added = {(c.kind, c.symbol) for c in backward if c.description == "added"}
        assert removed == added
        assert removed == {
            (ChangeKind.METHOD, "AuthService.Login"),
            (ChangeKind.FUNCTION, "NewService"),
            (ChangeKind.VARIABLE, "Registry"),
        }
        assert all(c.severity is Severity.BREAKING for c in forward)
        assert all(c.severity is Severity.ADDITION for c in backward)

    def test_repeated_comparisons_are_identical(self, differ, auth_contract):
        new = replace(auth_contract, functions=[], constants=[], types=[])

        assert differ.compare(auth_contract, new).changes == differ.compare(auth_contract, new).changes

    def test_single_added_function(self, differ, auth_contract):
        """Adding one function yields exactly one addition."""
        extra = Function("Logout", "auth", parameters=[Parameter("token", "string")])
        new = replace(auth_contract, functions=[*auth_contract.functions, extra])

        assert entries(differ.compare(auth_contract, new)) == [
            (Severity.ADDITION, ChangeKind.FUNCTION, "Logout", "added"),
        ]

    def test_declaration_order_does_not_matter(self, differ, auth_contract):
        reordered = replace(auth_contract, types=list(reversed(auth_contract.types)))

        assert len(differ.compare(auth_contract, reordered)) == 0


class TestCallables:
    """Signature rules for methods and functions."""

    def test_parameter_type_change_is_breaking(self, differ, auth_contract):
        function = replace(auth_contract.functions[0], parameters=[Parameter("cfg", "*Config")])
        new = replace(auth_contract, functions=[function])

        assert entries(differ.compare(auth_contract, new)) == [
            (Severity.BREAKING, ChangeKind.FUNCTION, "NewService", "signature changed"),
        ]

    def test_parameter_count_change_is_breaking(self, differ, auth_contract):
        function = replace(
            auth_contract.functions[0],
            parameters=[Parameter("cfg", "Config"), Parameter("debug", "bool")],
        )
        new = replace(auth_contract, functions=[function])

        change_set = differ.compare(auth_contract, new)
        assert [c.description for c in change_set] == ["signature changed"]
        assert change_set[0].new == "NewService(cfg: Config, debug: bool) -> AuthService"

    def test_result_change_is_breaking(self, differ, auth_contract):
        login = Method("Login", [Parameter("username", "string"), Parameter("password", "string")],
                       [Parameter(None, "bool")])
        new = with_interface_methods(auth_contract, login)

        assert entries(differ.compare(auth_contract, new)) == [
            (Severity.BREAKING, ChangeKind.METHOD, "AuthService.Login", "signature changed"),
        ]

    def test_parameter_rename_is_modification_by_default(self, differ, auth_contract):
        function = replace(auth_contract.functions[0], parameters=[Parameter("config", "Config")])
        new = replace(auth_contract, functions=[function])

        assert entries(differ.compare(auth_contract, new)) == [
            (Severity.MODIFICATION, ChangeKind.FUNCTION, "NewService", "parameter names changed"),
        ]

    def test_parameter_rename_can_be_breaking(self, auth_contract):
        function = replace(auth_contract.functions[0], parameters=[Parameter("config", "Config")])
        new = replace(auth_contract, functions=[function])
        strict = ContractDiffer(DiffOptions(parameter_names_breaking=True))

        change_set = strict.compare(auth_contract, new)
        assert change_set.has_breaking_changes
        assert change_set[0].description == "parameter names changed"

    def test_signature_and_doc_changes_reported_separately(self, differ, auth_contract):
        function = replace(auth_contract.functions[0], parameters=[], doc="Builds a service.")
        new = replace(auth_contract, functions=[function])

        assert entries(differ.compare(auth_contract, new)) == [
            (Severity.MODIFICATION, ChangeKind.FUNCTION, "NewService", "documentation changed"),
            (Severity.BREAKING, ChangeKind.FUNCTION, "NewService", "signature changed"),
        ]


class TestTypes:
    """Struct and alias rules."""

    def test_kind_change_is_breaking_without_field_diff(self, differ, auth_contract):
        user = TypeDecl("User", "auth", TypeKind.ALIAS, underlying="map[string]string")
        token = auth_contract.get("types", ("auth", "Token"))
        new = replace(auth_contract, types=[user, token])

        change_set = differ.compare(auth_contract, new)

        assert entries(change_set) == [
            (Severity.BREAKING, ChangeKind.TYPE, "User", "kind changed"),
        ]
        assert (change_set[0].old, change_set[0].new) == ("struct", "alias")

    def test_alias_target_change_is_breaking(self, differ, auth_contract):
        token = TypeDecl("Token", "auth", TypeKind.ALIAS, underlying="[]byte")
        user = auth_contract.get("types", ("auth", "User"))
        new = replace(auth_contract, types=[user, token])

        assert entries(differ.compare(auth_contract, new)) == [
            (Severity.BREAKING, ChangeKind.TYPE, "Token", "underlying type changed"),
        ]

    def test_field_removal_and_addition(self, differ, auth_contract):
        new = with_user_fields(
            auth_contract,
            Field("ID", "string", tag='json:"id"'),
            Field("Email", "string"),
        )

        assert entries(differ.compare(auth_contract, new)) == [
            (Severity.ADDITION, ChangeKind.FIELD, "User.Email", "added"),
            (Severity.BREAKING, ChangeKind.FIELD, "User.Name", "removed"),
        ]

    def test_tag_change_is_modification_by_default(self, differ, auth_contract):
        new = with_user_fields(
            auth_contract,
            Field("ID", "string", tag='json:"user_id"'),
            Field("Name", "string", tag='json:"name"'),
        )

        change_set = differ.compare(auth_contract, new)
        assert entries(change_set) == [
            (Severity.MODIFICATION, ChangeKind.FIELD, "User.ID", "tag changed"),
        ]

        strict = ContractDiffer(DiffOptions(tag_changes_breaking=True))
        assert strict.compare(auth_contract, new).has_breaking_changes

    def test_type_change_hides_tag_change(self, differ, auth_contract):
        new = with_user_fields(
            auth_contract,
            Field("ID", "int", tag='json:"user_id"'),
            Field("Name", "string", tag='json:"name"'),
        )

        assert [c.description for c in differ.compare(auth_contract, new)] == ["type changed"]

    def test_mixed_member_changes_reported_individually(self, differ, auth_contract):
        """A container with breaking and compatible sub-changes keeps both."""
        new = with_user_fields(
            auth_contract,
            Field("ID", "string", tag='json:"id"', doc="Primary key."),
            Field("Name", "int", tag='json:"name"'),
        )

        assert entries(differ.compare(auth_contract, new)) == [
            (Severity.MODIFICATION, ChangeKind.FIELD, "User.ID", "documentation changed"),
            (Severity.BREAKING, ChangeKind.FIELD, "User.Name", "type changed"),
        ]

    def test_struct_methods_compared(self, differ, auth_contract):
        user = replace(auth_contract.get("types", ("auth", "User")), methods=[Method("String", (), [Parameter(None, "string")])])
        token = auth_contract.get("types", ("auth", "Token"))
        new = replace(auth_contract, types=[user, token])

        assert entries(differ.compare(auth_contract, new)) == [
            (Severity.ADDITION, ChangeKind.METHOD, "User.String", "added"),
        ]


class TestValues:
    """Variable and constant rules."""

    def test_variable_type_change_is_breaking(self, differ, auth_contract):
        registry = replace(auth_contract.variables[0], type="map[string]int")
        new = replace(auth_contract, variables=[registry])

        assert entries(differ.compare(auth_contract, new)) == [
            (Severity.BREAKING, ChangeKind.VARIABLE, "Registry", "type changed"),
        ]

    def test_constant_type_change_hides_value_change(self, differ, auth_contract):
        timeout = replace(auth_contract.constants[0], type="time.Duration", value="30")
        new = replace(auth_contract, constants=[timeout])

        assert entries(differ.compare(auth_contract, new)) == [
            (Severity.BREAKING, ChangeKind.CONSTANT, "DefaultTimeout", "type changed"),
        ]


class TestInputsAndOrdering:
    """Inputs, symbol naming and ChangeSet ordering."""

    def test_documents_and_contracts_compare_identically(self, differ, auth_contract):
        new = replace(auth_contract, functions=[])

        from_objects = differ.compare(auth_contract, new)
        from_documents = differ.compare(contract_to_dict(auth_contract), contract_to_dict(new))

        assert from_objects.changes == from_documents.changes

    def test_invalid_document_raises_diff_error(self, differ, auth_contract):
        document = contract_to_dict(auth_contract)
        document["types"][0]["fields"] = "not-a-list"

        with pytest.raises(DiffError) as exc_info:
            differ.compare(auth_contract, document)

        assert exc_info.value.which == "new"
        assert "must be a list" in exc_info.value.violation

    def test_non_contract_input_raises_diff_error(self, differ, auth_contract):
        with pytest.raises(DiffError) as exc_info:
            differ.compare(["not", "a", "contract"], auth_contract)

        assert exc_info.value.which == "old"

    def test_unknown_document_keys_are_ignored(self, differ, auth_contract):
        document = contract_to_dict(auth_contract)
        document["generated_by"] = "someone"
        document["functions"][0]["deprecated"] = True

        assert len(differ.compare(auth_contract, document)) == 0

    def test_subpackage_symbols_are_relative_to_root(self, differ):
        old = Contract("shop", functions=[Function("connect", "shop"), Function("load", "shop.io")])
        new = Contract("shop")

        assert [c.symbol for c in differ.compare(old, new)] == ["connect", "io.load"]

    def test_symbols_outside_root_keep_full_names(self, differ):
        """A package that merely looks nested under the root must not collide with it."""
        old = Contract("a", functions=[Function("c", "a.b"), Function("c", "b")])
        new = Contract("a")

        change_set = differ.compare(old, new)

        assert [c.symbol for c in change_set] == ["a.b.c", "b.c"]
        assert len(change_set) == 2

    def test_changes_sorted_by_category_then_symbol(self, differ, auth_contract):
        new = Contract("auth", version="2.0.0")

        change_set = differ.compare(auth_contract, new)

        assert [(c.kind, c.symbol) for c in change_set] == [
            (ChangeKind.INTERFACE, "AuthService"),
            (ChangeKind.TYPE, "Token"),
            (ChangeKind.TYPE, "User"),
            (ChangeKind.FUNCTION, "NewService"),
            (ChangeKind.VARIABLE, "Registry"),
            (ChangeKind.CONSTANT, "DefaultTimeout"),
        ]
        assert (change_set.old_version, change_set.new_version) == ("1.0.0", "2.0.0")
