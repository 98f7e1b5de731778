"""Session managers owning the process's own login token."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from ..constants import (
    LEASE_EXPIRY_THRESHOLD_SECONDS,
    LEASE_MIN_RENEWAL_SECONDS,
    VAULT_TOKEN_HEADER,
)
from ..errors.handling import log_error
from ..errors.internal import (
    IllegalStateError,
    InternalError,
    TokenLookupError,
    TransportError,
)
from ..lease.publisher import EventPublisher
from ..lease.scheduler import (
    AsyncioTaskScheduler,
    LeaseRenewalScheduler,
    TaskScheduler,
    compute_renewal_delay,
    is_expiring,
)
from ..support.lease import Lease
from ..support.token import LoginToken, Token
from ..transport.base import Transport
from ..utils import format_duration
from .base import ClientAuthentication
from .events import (
    AfterLoginEvent,
    AfterLoginTokenRenewedEvent,
    AfterLoginTokenRevocationEvent,
    BeforeLoginTokenRevocationEvent,
    LoginErrorEvent,
    LoginTokenExpiredEvent,
)


@runtime_checkable
class SessionManager(Protocol):
    """Provides the token used to authenticate service calls."""

    async def get_token(self) -> Token: ...


class SessionState(Enum):
    NO_TOKEN = "no_token"
    LOGGING_IN = "logging_in"
    VALID = "valid"
    RENEWING = "renewing"
    EXPIRED = "expired"


class SimpleSessionManager:
    """Logs in once and caches the token for the lifetime of the manager."""

    def __init__(self, authentication: ClientAuthentication) -> None:
        if authentication is None:
            raise ValueError("ClientAuthentication must not be null")
        self.authentication = authentication
        self._token: Token | None = None
        self._login_task: asyncio.Task[Token] | None = None

    async def get_token(self) -> Token:
        if self._token is not None:
            return self._token
        if self._login_task is None:
            self._login_task = asyncio.create_task(self._login())
        return await asyncio.shield(self._login_task)

    async def _login(self) -> Token:
        try:
            self._token = await self.authentication.login()
            return self._token
        finally:
            self._login_task = None


class LifecycleAwareSessionManager:
    """Session manager that renews its login token before it expires.

    Concurrent ``get_token()`` callers share a single in-flight login and all
    observe its token or its exception. While a renewal is in flight callers
    receive the previous token. Once the token expires or a renewal fails the
    token is dropped and the next ``get_token()`` runs the login again.

    Args:
        authentication: Strategy performing the login.
        transport: Unauthenticated transport for renew/lookup/revoke calls.
        scheduler: Task scheduler; an ``AsyncioTaskScheduler`` by default.
        min_renewal: Lower bound in seconds for the renewal delay.
        expiry_threshold: Safety margin subtracted from the token TTL.
        token_self_lookup: Resolve TTL metadata for bare tokens via lookup-self.
    """

    def __init__(
        self,
        authentication: ClientAuthentication,
        transport: Transport,
        scheduler: TaskScheduler | None = None,
        *,
        min_renewal: float = LEASE_MIN_RENEWAL_SECONDS,
        expiry_threshold: float = LEASE_EXPIRY_THRESHOLD_SECONDS,
        token_self_lookup: bool = True,
    ) -> None:
        if authentication is None:
            raise ValueError("ClientAuthentication must not be null")
        if transport is None:
            raise TypeError("transport cannot be None")
        self.authentication = authentication
        self.transport = transport
        self.min_renewal = min_renewal
        self.expiry_threshold = expiry_threshold
        self.token_self_lookup = token_self_lookup
        self.renewal_scheduler = LeaseRenewalScheduler(
            scheduler or AsyncioTaskScheduler(), "session"
        )
        self.publisher = EventPublisher("SessionManager")
        self._token: Token | None = None
        self._revocable = False
        self._state = SessionState.NO_TOKEN
        self._login_task: asyncio.Task[Token] | None = None
        self._renew_lock = asyncio.Lock()

    def add_authentication_listener(self, listener: Callable[[Any], Any]) -> None:
        self.publisher.add_listener(listener)

    def remove_authentication_listener(self, listener: Callable[[Any], Any]) -> bool:
        return self.publisher.remove_listener(listener)

    def add_error_listener(self, listener: Callable[[LoginErrorEvent], Any]) -> None:
        self.publisher.add_error_listener(listener)

    def remove_error_listener(self, listener: Callable[[LoginErrorEvent], Any]) -> bool:
        return self.publisher.remove_error_listener(listener)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def token(self) -> Token | None:
        """Current token without triggering a login."""
        return self._token

    async def get_token(self) -> Token:
        """Return the current token, logging in first if there is none.

        Raises:
            PipelineError: If the login fails.
        """
        token = self._token
        if token is not None:
            return token
        task = self._login_task
        if task is None:
            task = asyncio.create_task(self._login())
            self._login_task = task
        return await asyncio.shield(task)

    async def _login(self) -> Token:
        self._state = SessionState.LOGGING_IN
        try:
            token = await self.authentication.login()
            revocable = isinstance(token, LoginToken)
            if self.token_self_lookup and not isinstance(token, LoginToken):
                token = await self._augment_with_self_lookup(token)
        except Exception as e:
            self._drop_token(SessionState.NO_TOKEN)
            log_error("Login failed", e)
            self.publisher.publish_error(LoginErrorEvent(None, e))
            raise
        finally:
            self._login_task = None

        self._token = token
        self._revocable = revocable
        self._state = SessionState.VALID
        logging.info(f"🔑 Logged in token={token!r}")
        self.publisher.publish(AfterLoginEvent(token))
        self._schedule_renewal(token)
        return token

    async def _augment_with_self_lookup(self, token: Token) -> Token:
        """Resolve TTL metadata of a bare token; the bare token is kept on failure."""
        try:
            data = await self._lookup_self(token)
        except TokenLookupError as e:
            log_error("Cannot enhance token with self-lookup", e)
            self.publisher.publish_error(LoginErrorEvent(token, e))
            return token
        ttl = data.get("ttl") or 0
        explicit_max_ttl = data.get("explicit_max_ttl")
        return LoginToken(
            token.value,
            lease_duration=float(ttl),
            renewable=bool(data.get("renewable", False)),
            explicit_max_ttl=float(explicit_max_ttl) if explicit_max_ttl else None,
            accessor=data.get("accessor"),
        )

    async def _lookup_self(self, token: Token) -> Mapping[str, Any]:
        try:
            response = await self.transport.send(
                "GET",
                "auth/token/lookup-self",
                headers={VAULT_TOKEN_HEADER: token.value},
            )
        except TransportError as e:
            raise TokenLookupError(f"Token self-lookup failed: {e}") from e
        if not response.is_success:
            raise TokenLookupError(
                f"Token self-lookup failed with Status {response.status}",
                status=response.status,
                body=response.body,
            )
        body = response.body
        if not isinstance(body, Mapping) or not isinstance(body.get("data"), Mapping):
            raise TokenLookupError("Token self-lookup returned no data", status=response.status)
        return body["data"]

    def _schedule_renewal(self, token: Token) -> None:
        """Schedule renewal, or expire a token whose TTL is inside the expiry window."""
        if not isinstance(token, LoginToken) or token.lease_duration <= 0:
            return
        if is_expiring(token.lease_duration, self.expiry_threshold):
            self._expire(token)
            return
        if not token.renewable:
            return
        delay = compute_renewal_delay(
            token.lease_duration, self.min_renewal, self.expiry_threshold
        )
        self.renewal_scheduler.schedule(
            Lease.from_time_to_live(token.lease_duration), self._scheduled_renewal, delay
        )
        logging.debug(f"⏰ Login token renewal in {format_duration(delay)}")

    async def _scheduled_renewal(self, _lease: Lease) -> None:
        try:
            await self.renew_token()
        except (InternalError, ValueError):
            # Already logged and published by renew_token.
            return

    async def renew_token(self) -> Token:
        """Renew the current login token now.

        Raises:
            IllegalStateError: If there is no renewable login token.
            TransportError: If the renewal call fails; the token is dropped.
        """
        async with self._renew_lock:
            token = self._token
            if not (isinstance(token, LoginToken) and token.renewable):
                raise IllegalStateError("No renewable login token available")
            self._state = SessionState.RENEWING
            try:
                renewed = await self._renew_self(token)
            except (TransportError, ValueError) as e:
                self._drop_token(SessionState.NO_TOKEN)
                log_error("Cannot renew login token", e)
                self.publisher.publish_error(LoginErrorEvent(token, e))
                raise

            if is_expiring(renewed.lease_duration, self.expiry_threshold):
                self._expire(renewed)
                return renewed

            self._token = renewed
            self._state = SessionState.VALID
            logging.info(
                f"🔄 Renewed login token ({format_duration(renewed.lease_duration)} remaining)"
            )
            self.publisher.publish(AfterLoginTokenRenewedEvent(renewed))
            self._schedule_renewal(renewed)
            return renewed

    async def _renew_self(self, token: LoginToken) -> LoginToken:
        response = await self.transport.send(
            "POST",
            "auth/token/renew-self",
            headers={VAULT_TOKEN_HEADER: token.value},
        )
        if not response.is_success:
            raise TransportError(
                f"Token renewal failed with Status {response.status}",
                status=response.status,
                body=response.body,
            )
        body = response.body
        auth = body.get("auth") if isinstance(body, Mapping) else None
        return LoginToken.from_auth(auth)

    def _expire(self, token: LoginToken) -> None:
        self._drop_token(SessionState.EXPIRED)
        logging.warning(
            f"⌛ Login token expired ({format_duration(token.lease_duration)} left), logging in again on next access"
        )
        self.publisher.publish(LoginTokenExpiredEvent(token))

    def _drop_token(self, state: SessionState) -> None:
        self.renewal_scheduler.disable_schedule()
        self._token = None
        self._revocable = False
        self._state = state

    async def destroy(self) -> None:
        """Cancel renewal and revoke the login token if this manager obtained it."""
        token = self._token
        revocable = self._revocable
        self._drop_token(SessionState.NO_TOKEN)
        if token is None or not revocable:
            return
        self.publisher.publish(BeforeLoginTokenRevocationEvent(token))
        try:
            response = await self.transport.send(
                "POST",
                "auth/token/revoke-self",
                headers={VAULT_TOKEN_HEADER: token.value},
            )
            if not response.is_success:
                logging.warning(f"⚠️ Cannot revoke login token: Status {response.status}")
            else:
                logging.info("🗑️ Revoked login token")
        except TransportError as e:
            log_error("Cannot revoke login token", e)
        self.publisher.publish(AfterLoginTokenRevocationEvent(token))
