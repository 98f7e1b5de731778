"""Login flows, their executor and the session managers."""

from .approle import (
    ABSENT_SECRET_ID,
    AppRoleAuthentication,
    AppRoleOptions,
    Provided,
    Pull,
    Wrapped,
)
from .aws_iam import AwsIamAuthentication, AwsIamOptions
from .base import AuthenticationStepsFactory, ClientAuthentication
from .events import (
    AfterLoginEvent,
    AfterLoginTokenRenewedEvent,
    AfterLoginTokenRevocationEvent,
    AuthenticationEvent,
    BeforeLoginTokenRevocationEvent,
    LoginErrorEvent,
    LoginTokenExpiredEvent,
)
from .executor import AuthenticationStepsExecutor
from .gcp_iam import GcpIamAuthentication, GcpIamOptions
from .session import (
    LifecycleAwareSessionManager,
    SessionManager,
    SessionState,
    SimpleSessionManager,
)
from .steps import AuthenticationSteps, HttpRequest, Node, StepKind
from .token import ClientCertificateAuthentication, TokenAuthentication

__all__ = [
    "ABSENT_SECRET_ID",
    "AfterLoginEvent",
    "AfterLoginTokenRenewedEvent",
    "AfterLoginTokenRevocationEvent",
    "AppRoleAuthentication",
    "AppRoleOptions",
    "AuthenticationEvent",
    "AuthenticationSteps",
    "AuthenticationStepsExecutor",
    "AuthenticationStepsFactory",
    "AwsIamAuthentication",
    "AwsIamOptions",
    "BeforeLoginTokenRevocationEvent",
    "ClientAuthentication",
    "ClientCertificateAuthentication",
    "GcpIamAuthentication",
    "GcpIamOptions",
    "HttpRequest",
    "LifecycleAwareSessionManager",
    "LoginErrorEvent",
    "LoginTokenExpiredEvent",
    "Node",
    "Provided",
    "Pull",
    "SessionManager",
    "SessionState",
    "SimpleSessionManager",
    "StepKind",
    "TokenAuthentication",
    "Wrapped",
]
