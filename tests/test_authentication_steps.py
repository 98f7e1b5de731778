"""Tests for vaultkeeper/authentication/steps.py."""

import pytest

from vaultkeeper.authentication.steps import (
    AuthenticationSteps,
    HttpRequest,
    MapStep,
    OnNextStep,
    RequestStep,
    StepKind,
    SupplierStep,
    ZipStep,
    collect_steps,
)
from vaultkeeper.support.token import Token


def supply_document():
    return {"document": "identity"}


def sign(document):
    return {**document, "signature": "sig"}


class TestHttpRequest:
    """Test suite for the immutable request definition."""

    def test_post_builds_method_and_variables(self):
        # Act
        request = HttpRequest.post("auth/{mount}/login", "aws")

        # Assert
        assert request.method == "POST"
        assert request.uri_template == "auth/{mount}/login"
        assert request.uri_variables == ("aws",)
        assert not request.has_body
        assert str(request) == "POST auth/{mount}/login"

    def test_with_headers_and_body_return_new_instances(self):
        # Arrange
        base = HttpRequest.get("sys/health")

        # Act
        with_headers = base.with_headers({"X-Test": "1"})
        with_body = with_headers.with_body({"k": "v"})

        # Assert
        assert dict(base.headers) == {}
        assert dict(with_headers.headers) == {"X-Test": "1"}
        assert with_body.body == {"k": "v"}
        assert with_body.has_body
        assert not with_headers.has_body

    def test_with_headers_merges(self):
        request = HttpRequest.put("x").with_headers({"A": "1"}).with_headers({"B": "2"})
        assert dict(request.headers) == {"A": "1", "B": "2"}

    def test_empty_template_rejected(self):
        with pytest.raises(ValueError):
            HttpRequest.get("")

    def test_explicit_none_body_counts_as_body(self):
        assert HttpRequest.post("x").with_body(None).has_body


class TestStepGraph:
    """Test suite for graph construction."""

    def test_building_performs_no_calls(self):
        # Arrange
        calls = []

        def supplier():
            calls.append("supplier")
            return "x"

        # Act
        AuthenticationSteps.from_supplier(supplier).map(str.upper).login(Token.of)

        # Assert
        assert calls == []

    def test_steps_are_in_definition_order(self):
        # Act
        steps = (
            AuthenticationSteps.from_supplier(supply_document)
            .map(sign)
            .on_next(print)
            .request(HttpRequest.post("auth/{mount}/verify", "aws"))
            .login("auth/{mount}/login", "aws")
        )

        # Assert
        kinds = [s.kind for s in steps.steps]
        assert kinds == [
            StepKind.SUPPLIER,
            StepKind.MAP,
            StepKind.ON_NEXT,
            StepKind.REQUEST,
            StepKind.REQUEST,
        ]
        assert isinstance(steps.steps[0], SupplierStep)
        assert isinstance(steps.steps[1], MapStep)
        assert isinstance(steps.steps[2], OnNextStep)
        assert isinstance(steps.steps[-1], RequestStep)
        assert len(steps) == 5

    def test_branches_share_prefix_without_mutation(self):
        # Arrange
        source = AuthenticationSteps.from_value("shared")

        # Act
        first = source.map(str.upper).login(Token.of)
        second = source.login(Token.of)

        # Assert
        assert len(first.steps) == 3
        assert len(second.steps) == 2
        assert first.steps[0] is second.steps[0]

    def test_login_with_template_posts_to_template(self):
        steps = AuthenticationSteps.from_value({"jwt": "x"}).login("auth/{mount}/login", "gcp")
        terminal = steps.steps[-1]
        assert isinstance(terminal, RequestStep)
        assert terminal.definition.method == "POST"
        assert terminal.definition.uri_variables == ("gcp",)

    def test_login_with_function_maps_to_token(self):
        steps = AuthenticationSteps.from_value("abc").login(Token.of)
        assert isinstance(steps.steps[-1], MapStep)

    def test_login_rejects_unknown_target(self):
        with pytest.raises(ValueError):
            AuthenticationSteps.from_value("abc").login(42)

    def test_just_token_is_single_supplier(self):
        steps = AuthenticationSteps.just(Token.of("root"))
        assert len(steps.steps) == 1
        assert steps.steps[0].kind is StepKind.SUPPLIER

    def test_just_request_is_single_request(self):
        steps = AuthenticationSteps.just(HttpRequest.post("auth/cert/login"))
        assert len(steps.steps) == 1
        assert steps.steps[0].kind is StepKind.REQUEST

    def test_just_rejects_other_values(self):
        with pytest.raises(ValueError):
            AuthenticationSteps.just("root")

    def test_zip_with_keeps_other_chain(self):
        # Arrange
        other = AuthenticationSteps.from_value("secret-id").map(str.upper)

        # Act
        steps = AuthenticationSteps.from_value("role-id").zip_with(other).login(Token.of)

        # Assert
        zip_step = steps.steps[1]
        assert isinstance(zip_step, ZipStep)
        assert [s.kind for s in collect_steps(zip_step.other)] == [StepKind.SUPPLIER, StepKind.MAP]

    def test_descriptions_name_the_step(self):
        steps = (
            AuthenticationSteps.from_supplier(supply_document)
            .map(sign)
            .login("auth/{mount}/login", "aws")
        )
        descriptions = [str(s) for s in steps.steps]
        assert descriptions[0] == "Supplier: supply_document"
        assert descriptions[1] == "Map: sign"
        assert descriptions[2] == "HTTP request POST auth/{mount}/login"

    def test_operators_reject_none(self):
        node = AuthenticationSteps.from_value("x")
        with pytest.raises(ValueError):
            node.map(None)
        with pytest.raises(ValueError):
            node.on_next(None)
        with pytest.raises(ValueError):
            node.request(None)
        with pytest.raises(ValueError):
            node.zip_with(None)
