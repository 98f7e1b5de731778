"""AWS IAM authentication.

The login carries a pre-signed ``sts:GetCallerIdentity`` request that the
service replays against AWS. Signing is delegated to a caller-supplied
``signer`` so no AWS SDK is required here.
"""

from __future__ import annotations

import base64
import inspect
import json
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass

from ..support.token import Token
from ..transport.base import Transport
from .executor import AuthenticationStepsExecutor
from .steps import AuthenticationSteps

REQUEST_BODY = "Action=GetCallerIdentity&Version=2011-06-15"
SERVER_ID_HEADER = "X-Vault-AWS-IAM-Server-ID"
DEFAULT_ENDPOINT_URI = "https://sts.amazonaws.com/"

# (endpoint_uri, unsigned_headers, body) -> signed headers
AwsRequestSigner = Callable[
    [str, Mapping[str, str], str],
    Mapping[str, str] | Awaitable[Mapping[str, str]],
]


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


@dataclass(frozen=True)
class AwsIamOptions:
    """Settings of an AWS IAM login.

    Attributes:
        signer: Produces the signed header set for the STS request.
        role: Role to log in with; the service default is used when None.
        server_id: Value for the server-id header, if the mount requires one.
        endpoint_uri: STS endpoint the signed request targets.
        path: Mount path of the AWS backend.
    """

    signer: AwsRequestSigner
    role: str | None = None
    server_id: str | None = None
    endpoint_uri: str = DEFAULT_ENDPOINT_URI
    path: str = "aws"

    def __post_init__(self) -> None:
        if self.signer is None:
            raise ValueError("Signer must not be null")
        if not self.path:
            raise ValueError("Path must not be empty")


def create_iam_request_headers(options: AwsIamOptions) -> dict[str, str]:
    headers = {
        "Content-Length": str(len(REQUEST_BODY)),
        "Content-Type": "application/x-www-form-urlencoded",
    }
    if options.server_id:
        headers[SERVER_ID_HEADER] = options.server_id
    return headers


def create_request_body(
    options: AwsIamOptions, signed_headers: Mapping[str, str]
) -> dict[str, str]:
    """Build the login payload from the signed header set."""
    header_json = json.dumps({k: [v] for k, v in signed_headers.items()})
    body = {
        "iam_http_request_method": "POST",
        "iam_request_url": _b64(options.endpoint_uri),
        "iam_request_body": _b64(REQUEST_BODY),
        "iam_request_headers": _b64(header_json),
    }
    if options.role:
        body["role"] = options.role
    return body


class AwsIamAuthentication:
    def __init__(self, options: AwsIamOptions, transport: Transport | None = None) -> None:
        if options is None:
            raise ValueError("AwsIamOptions must not be null")
        self.options = options
        self.transport = transport

    @staticmethod
    def create_authentication_steps(options: AwsIamOptions) -> AuthenticationSteps:
        def unsigned_headers() -> dict[str, str]:
            return create_iam_request_headers(options)

        async def sign_headers(headers: dict[str, str]) -> Mapping[str, str]:
            signed = options.signer(options.endpoint_uri, headers, REQUEST_BODY)
            if inspect.isawaitable(signed):
                signed = await signed
            return signed

        def login_body(signed: Mapping[str, str]) -> dict[str, str]:
            return create_request_body(options, signed)

        return (
            AuthenticationSteps.from_supplier(unsigned_headers)
            .map(sign_headers)
            .map(login_body)
            .login("auth/{mount}/login", options.path)
        )

    def get_authentication_steps(self) -> AuthenticationSteps:
        return self.create_authentication_steps(self.options)

    async def login(self) -> Token:
        if self.transport is None:
            raise ValueError("Transport is required to log in")
        return await AuthenticationStepsExecutor(
            self.get_authentication_steps(), self.transport
        ).login()
