"""Tests for token, certificate, AppRole, AWS IAM and GCP IAM authentication."""

import base64
import json
from datetime import UTC, datetime, timedelta

import pytest

from tests.fixtures.transport_fixtures import StubTransport, auth_body, error, ok
from vaultkeeper.authentication import (
    AppRoleAuthentication,
    AppRoleOptions,
    AuthenticationStepsExecutor,
    AwsIamAuthentication,
    AwsIamOptions,
    ClientCertificateAuthentication,
    GcpIamAuthentication,
    GcpIamOptions,
    Provided,
    Pull,
    TokenAuthentication,
    Wrapped,
)
from vaultkeeper.authentication.aws_iam import REQUEST_BODY, create_iam_request_headers
from vaultkeeper.authentication.gcp_iam import create_claims
from vaultkeeper.errors import PipelineError
from vaultkeeper.support.token import LoginToken, Token


def _decode(value: str) -> str:
    return base64.b64decode(value).decode("utf-8")


class TestTokenAuthentication:
    @pytest.mark.asyncio
    async def test_login_returns_configured_token(self):
        auth = TokenAuthentication("s.static")
        token = await auth.login()
        assert token == Token.of("s.static")

    @pytest.mark.asyncio
    async def test_steps_yield_same_token(self):
        auth = TokenAuthentication(Token.of("s.static"))
        token = await AuthenticationStepsExecutor(auth.get_authentication_steps(), StubTransport()).login()
        assert token.value == "s.static"

    def test_empty_token_rejected(self):
        with pytest.raises(ValueError):
            TokenAuthentication("")


class TestClientCertificateAuthentication:
    @pytest.mark.asyncio
    async def test_login_posts_to_mount(self):
        # Arrange
        transport = StubTransport().respond("POST", "auth/my-cert/login", ok(auth_body("s.cert", 100, True)))
        auth = ClientCertificateAuthentication(transport, path="my-cert")

        # Act
        token = await auth.login()

        # Assert
        assert isinstance(token, LoginToken)
        assert token.value == "s.cert"
        assert transport.calls[0].body is None

    @pytest.mark.asyncio
    async def test_login_without_transport_fails(self):
        with pytest.raises(ValueError):
            await ClientCertificateAuthentication().login()


class TestAppRoleAuthentication:
    """Test suite for AppRole RoleId/SecretId variants."""

    def setup_method(self):
        self.transport = StubTransport()
        self.transport.respond("POST", "auth/approle/login", ok(auth_body("s.approle", 1200, True)))

    @pytest.mark.asyncio
    async def test_provided_role_and_secret_id(self):
        # Arrange
        auth = AppRoleAuthentication(AppRoleOptions.provided("my-role-id", "my-secret-id"), self.transport)

        # Act
        token = await auth.login()

        # Assert
        assert token.value == "s.approle"
        assert self.transport.calls[0].body == {"role_id": "my-role-id", "secret_id": "my-secret-id"}

    @pytest.mark.asyncio
    async def test_absent_secret_id_sends_role_id_only(self):
        auth = AppRoleAuthentication(AppRoleOptions.provided("my-role-id"), self.transport)

        await auth.login()

        assert self.transport.calls[0].body == {"role_id": "my-role-id"}

    @pytest.mark.asyncio
    async def test_pull_role_and_secret_id(self):
        # Arrange
        initial = Token.of("s.initial")
        self.transport.respond(
            "GET", "auth/approle/role/web/role-id", ok({"data": {"role_id": "pulled-role"}})
        )
        self.transport.respond(
            "POST", "auth/approle/role/web/secret-id", ok({"data": {"secret_id": "pulled-secret"}})
        )
        options = AppRoleOptions(Pull(initial), Pull(initial), app_role="web")

        # Act
        await AppRoleAuthentication(options, self.transport).login()

        # Assert
        role_call = self.transport.calls_to("GET", "auth/approle/role/web/role-id")[0]
        assert role_call.headers == {"X-Vault-Token": "s.initial"}
        secret_call = self.transport.calls_to("POST", "auth/approle/role/web/secret-id")[0]
        assert secret_call.headers == {"X-Vault-Token": "s.initial"}
        login_call = self.transport.calls_to("POST", "auth/approle/login")[0]
        assert login_call.body == {"role_id": "pulled-role", "secret_id": "pulled-secret"}

    @pytest.mark.asyncio
    async def test_wrapped_secret_id_is_unwrapped(self):
        self.transport.respond("POST", "sys/wrapping/unwrap", ok({"data": {"secret_id": "unwrapped"}}))
        options = AppRoleOptions(Provided("role"), Wrapped(Token.of("s.wrapping")))

        await AppRoleAuthentication(options, self.transport).login()

        unwrap = self.transport.calls_to("POST", "sys/wrapping/unwrap")[0]
        assert unwrap.headers == {"X-Vault-Token": "s.wrapping"}
        assert self.transport.calls_to("POST", "auth/approle/login")[0].body == {
            "role_id": "role",
            "secret_id": "unwrapped",
        }

    @pytest.mark.asyncio
    async def test_pull_failure_is_pipeline_error(self):
        self.transport.respond("GET", "auth/approle/role/web/role-id", error(403))
        options = AppRoleOptions(Pull(Token.of("s.initial")), app_role="web")

        with pytest.raises(PipelineError) as exc_info:
            await AppRoleAuthentication(options, self.transport).login()

        assert exc_info.value.status == 403

    def test_pull_requires_role_name(self):
        with pytest.raises(ValueError, match="AppRole name"):
            AppRoleOptions(Pull(Token.of("s.initial")))

    def test_custom_path_used_in_login(self):
        steps = AppRoleAuthentication.create_authentication_steps(
            AppRoleOptions.provided("r", path="custom")
        )
        assert steps.steps[-1].definition.uri_variables == ("custom",)


class TestAwsIamAuthentication:
    """Test suite for AWS IAM login payloads."""

    def test_unsigned_headers_include_server_id(self):
        options = AwsIamOptions(signer=lambda url, headers, body: headers, server_id="vault.example.com")

        headers = create_iam_request_headers(options)

        assert headers["Content-Length"] == str(len(REQUEST_BODY))
        assert headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert headers["X-Vault-AWS-IAM-Server-ID"] == "vault.example.com"

    @pytest.mark.asyncio
    async def test_login_body_is_base64_encoded(self):
        # Arrange
        signer_calls = []

        def signer(url, headers, body):
            signer_calls.append((url, dict(headers), body))
            return {**headers, "Authorization": "AWS4-HMAC-SHA256 signed"}

        transport = StubTransport().respond("POST", "auth/aws/login", ok(auth_body("s.aws")))
        options = AwsIamOptions(signer=signer, role="app-role")

        # Act
        token = await AwsIamAuthentication(options, transport).login()

        # Assert
        assert token.value == "s.aws"
        assert signer_calls[0][0] == "https://sts.amazonaws.com/"
        assert signer_calls[0][2] == REQUEST_BODY
        body = transport.calls[0].body
        assert body["iam_http_request_method"] == "POST"
        assert body["role"] == "app-role"
        assert _decode(body["iam_request_url"]) == "https://sts.amazonaws.com/"
        assert _decode(body["iam_request_body"]) == REQUEST_BODY
        headers = json.loads(_decode(body["iam_request_headers"]))
        assert headers["Authorization"] == ["AWS4-HMAC-SHA256 signed"]

    @pytest.mark.asyncio
    async def test_async_signer_supported(self):
        async def signer(url, headers, body):
            return headers

        transport = StubTransport().respond("POST", "auth/aws-east/login", ok(auth_body("s.aws")))
        options = AwsIamOptions(signer=signer, path="aws-east")

        await AwsIamAuthentication(options, transport).login()

        assert "role" not in transport.calls[0].body

    @pytest.mark.asyncio
    async def test_signer_failure_is_pipeline_error(self):
        def signer(url, headers, body):
            raise RuntimeError("no credentials")

        transport = StubTransport()

        with pytest.raises(PipelineError, match="no credentials"):
            await AwsIamAuthentication(AwsIamOptions(signer=signer), transport).login()
        assert transport.calls == []


class TestGcpIamAuthentication:
    """Test suite for GCP IAM JWT login."""

    def setup_method(self):
        self.now = datetime(2024, 1, 1, tzinfo=UTC)

    def test_claims_use_clock_and_validity(self):
        options = GcpIamOptions(
            role="dev",
            service_account_id="sa@project.iam.gserviceaccount.com",
            jwt_signer=lambda sa, claims: "jwt",
            clock=lambda: self.now,
        )

        claims = create_claims(options)

        assert claims == {
            "sub": "sa@project.iam.gserviceaccount.com",
            "aud": "vault/dev",
            "exp": int((self.now + timedelta(minutes=15)).timestamp()),
        }

    @pytest.mark.asyncio
    async def test_login_posts_role_and_signed_jwt(self):
        # Arrange
        signed = []

        def jwt_signer(service_account, claims):
            signed.append((service_account, claims))
            return "signed.jwt.value"

        transport = StubTransport().respond("POST", "auth/gcp/login", ok(auth_body("s.gcp", 300)))
        options = GcpIamOptions(
            role="dev",
            service_account_id="sa@project",
            jwt_signer=jwt_signer,
            clock=lambda: self.now,
        )

        # Act
        token = await GcpIamAuthentication(options, transport).login()

        # Assert
        assert token.value == "s.gcp"
        assert signed[0][0] == "sa@project"
        assert transport.calls[0].body == {"role": "dev", "jwt": "signed.jwt.value"}

    def test_role_required(self):
        with pytest.raises(ValueError):
            GcpIamOptions(role="", service_account_id="sa", jwt_signer=lambda sa, c: "jwt")
