"""Tests for the transport boundary and its aiohttp implementation."""

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from tests.fixtures.transport_fixtures import StubTransport, ok
from vaultkeeper.errors import TransportError
from vaultkeeper.support.token import Token
from vaultkeeper.transport import (
    AiohttpTransport,
    SessionBoundTransport,
    TransportResponse,
    expand_uri,
)


def _response(status=200, text='{"data": {}}', content_type="application/json"):
    """Build an async context manager mimicking ``session.request(...)``."""
    resp = MagicMock()
    resp.status = status
    resp.text = AsyncMock(return_value=text)
    resp.content_type = content_type
    resp.headers = {"Content-Type": content_type}
    ctx = MagicMock()
    ctx.__aenter__.return_value = resp
    ctx.__aexit__.return_value = False
    return ctx


class TestExpandUri:
    def test_positional_variables(self):
        assert expand_uri("auth/{mount}/role/{role}", ["approle", "web"]) == "auth/approle/role/web"

    def test_named_variables(self):
        assert expand_uri("auth/{mount}/login", {"mount": "aws"}) == "auth/aws/login"

    def test_values_are_percent_encoded_keeping_slashes(self):
        assert expand_uri("auth/{mount}/login", ["team a/aws"]) == "auth/team%20a/aws/login"

    def test_template_without_placeholders(self):
        assert expand_uri("sys/health") == "sys/health"

    def test_missing_variables_rejected(self):
        with pytest.raises(ValueError):
            expand_uri("auth/{mount}/login")
        with pytest.raises(ValueError):
            expand_uri("auth/{mount}/role/{role}", ["approle"])
        with pytest.raises(ValueError):
            expand_uri("auth/{mount}/login", {"other": "x"})


class TestTransportResponse:
    def test_success_range(self):
        assert TransportResponse(200).is_success
        assert TransportResponse(204).is_success
        assert not TransportResponse(404).is_success
        assert not TransportResponse(500).is_success


class TestAiohttpTransport:
    """Test suite for request building, body parsing and retries."""

    def setup_method(self):
        self.session = MagicMock()
        self.transport = AiohttpTransport(
            self.session, scheme="https", host="vault.example", port=8200, max_attempts=2
        )

    @pytest.mark.asyncio
    async def test_json_body_sent_and_parsed(self):
        # Arrange
        self.session.request.return_value = _response(200, '{"data": {"k": "v"}}')

        # Act
        response = await self.transport.send(
            "post", "auth/{mount}/login", ["approle"], {"H": "1"}, {"role_id": "r"}
        )

        # Assert
        assert response.status == 200
        assert response.body == {"data": {"k": "v"}}
        args, kwargs = self.session.request.call_args
        assert args == ("POST", "https://vault.example:8200/v1/auth/approle/login")
        assert kwargs["json"] == {"role_id": "r"}
        assert kwargs["headers"] == {"H": "1"}
        assert isinstance(kwargs["timeout"], aiohttp.ClientTimeout)

    @pytest.mark.asyncio
    async def test_string_body_sent_as_data(self):
        self.session.request.return_value = _response(200, "")

        await self.transport.send("POST", "https://sts.amazonaws.com/", body="Action=Get")

        args, kwargs = self.session.request.call_args
        assert args[1] == "https://sts.amazonaws.com/"
        assert kwargs["data"] == "Action=Get"
        assert "json" not in kwargs

    @pytest.mark.asyncio
    async def test_empty_body_is_none_and_text_kept(self):
        self.session.request.side_effect = [
            _response(204, ""),
            _response(200, "plain text", content_type="text/plain"),
        ]

        empty = await self.transport.send("PUT", "sys/leases/revoke")
        text = await self.transport.send("GET", "sys/health")

        assert empty.body is None
        assert text.body == "plain text"

    @pytest.mark.asyncio
    async def test_error_status_returned_without_retry(self):
        self.session.request.return_value = _response(503, '{"errors": ["sealed"]}')

        response = await self.transport.send("GET", "secret/app")

        assert response.status == 503
        assert response.body == {"errors": ["sealed"]}
        assert self.session.request.call_count == 1

    @pytest.mark.asyncio
    async def test_connection_error_retried(self):
        # Arrange
        self.session.request.side_effect = [
            aiohttp.ClientConnectionError("reset"),
            _response(200, '{"data": {}}'),
        ]

        # Act
        response = await self.transport.send("GET", "secret/app")

        # Assert
        assert response.status == 200
        assert self.session.request.call_count == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_transport_error(self):
        self.session.request.side_effect = aiohttp.ClientConnectionError("refused")

        with pytest.raises(TransportError, match="HTTP request failed"):
            await self.transport.send("GET", "secret/app")

        assert self.session.request.call_count == 2

    @pytest.mark.asyncio
    async def test_default_headers_merged(self):
        transport = AiohttpTransport(self.session, default_headers={"X-Vault-Namespace": "team"})
        self.session.request.return_value = _response()

        await transport.send("GET", "secret/app", headers={"X-Other": "1"})

        _, kwargs = self.session.request.call_args
        assert kwargs["headers"] == {"X-Vault-Namespace": "team", "X-Other": "1"}

    def test_session_required(self):
        with pytest.raises(TypeError):
            AiohttpTransport(None)


class TestSessionBoundTransport:
    @pytest.mark.asyncio
    async def test_injects_session_token(self):
        # Arrange
        delegate = StubTransport().respond("GET", "secret/app", ok({"data": {}}))
        session_manager = MagicMock()
        session_manager.get_token = AsyncMock(return_value=Token.of("s.session"))
        transport = SessionBoundTransport(delegate, session_manager)

        # Act
        await transport.send("GET", "secret/app", headers={"X-Other": "1"})

        # Assert
        assert delegate.calls[0].headers == {"X-Other": "1", "X-Vault-Token": "s.session"}
        session_manager.get_token.assert_awaited_once()
