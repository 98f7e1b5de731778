"""Central application context wiring transport, session and lease container."""

from __future__ import annotations

import asyncio
import logging

import aiohttp

from .authentication.approle import AppRoleAuthentication, AppRoleOptions
from .authentication.base import ClientAuthentication
from .authentication.session import (
    LifecycleAwareSessionManager,
    SessionManager,
    SimpleSessionManager,
)
from .authentication.token import ClientCertificateAuthentication, TokenAuthentication
from .config.model import AuthenticationConfig, VaultkeeperConfig
from .errors.internal import InternalError
from .lease.container import SecretLeaseContainer
from .lease.scheduler import AsyncioTaskScheduler
from .transport.base import Transport
from .transport.http import AiohttpTransport
from .transport.session import SessionBoundTransport


def create_authentication(
    config: AuthenticationConfig, transport: Transport
) -> ClientAuthentication:
    """Build the login strategy selected by ``config.method``."""
    if config.method == "token":
        return TokenAuthentication(config.token or "")
    if config.method == "approle":
        options = AppRoleOptions.provided(
            config.role_id or "", config.secret_id, path=config.path or "approle"
        )
        return AppRoleAuthentication(options, transport)
    if config.method == "cert":
        return ClientCertificateAuthentication(transport, path=config.path or "cert")
    raise ValueError(f"Unsupported authentication method: {config.method}")


class ApplicationContext:
    """Holds shared async resources for the application lifecycle."""

    session: aiohttp.ClientSession | None
    scheduler: AsyncioTaskScheduler | None
    session_manager: SessionManager | None
    container: SecretLeaseContainer | None
    _started: bool
    _lock: asyncio.Lock

    def __init__(self, config: VaultkeeperConfig) -> None:
        self.config = config
        self.session = None
        self.scheduler = None
        self.session_manager = None
        self.container = None
        self._started = False
        self._lock = asyncio.Lock()

    # ------------------------- Construction ------------------------- #
    @classmethod
    async def create(cls, config: VaultkeeperConfig) -> ApplicationContext:
        """Create the HTTP session and every component on top of it.

        Raises:
            ValueError: If the authentication config is unusable.
        """
        ctx = cls(config)
        logging.debug("🧪 Creating application context")
        ctx.session = aiohttp.ClientSession()
        logging.debug("🔗 HTTP session created")
        endpoint = config.endpoint
        transport = AiohttpTransport(
            ctx.session, scheme=endpoint.scheme, host=endpoint.host, port=endpoint.port
        )
        ctx.scheduler = AsyncioTaskScheduler()
        authentication = create_authentication(config.authentication, transport)
        if config.session_renewal:
            ctx.session_manager = LifecycleAwareSessionManager(
                authentication,
                transport,
                ctx.scheduler,
                min_renewal=config.lease.min_renewal,
                expiry_threshold=config.lease.expiry_threshold,
            )
        else:
            ctx.session_manager = SimpleSessionManager(authentication)
        ctx.container = SecretLeaseContainer(
            SessionBoundTransport(transport, ctx.session_manager),
            ctx.scheduler,
            min_renewal=config.lease.min_renewal,
            expiry_threshold=config.lease.expiry_threshold,
            fetch_on_start=config.lease.fetch_on_start,
        )
        for requested in config.requested_secrets():
            await ctx.container.add_requested_secret(requested)
        return ctx

    # --------------------------- Lifecycle -------------------------- #
    async def start(self) -> None:
        """Log in and start the lease container. Idempotent."""
        async with self._lock:
            if self._started:
                return
            if self.session_manager:
                await self.session_manager.get_token()
            if self.container:
                await self.container.start()
            self._started = True
            logging.info("🚀 Application context started")

    async def shutdown(self) -> None:
        """Revoke leases and the login token, then close the HTTP session."""
        async with self._lock:
            logging.info("🔻 Application context shutdown initiated")
            await self._destroy_container()
            await self._destroy_session_manager()
            if self.scheduler:
                await self.scheduler.shutdown()
            await self._close_http_session()
            self._started = False
            logging.info("✅ Application context shutdown complete")

    async def _destroy_container(self) -> None:
        if not self.container:
            return
        try:
            await self.container.destroy()
        except (InternalError, RuntimeError, OSError, ValueError) as e:
            logging.error(f"💥 Error destroying lease container: {str(e)}")
        finally:
            self.container = None

    async def _destroy_session_manager(self) -> None:
        if not isinstance(self.session_manager, LifecycleAwareSessionManager):
            self.session_manager = None
            return
        try:
            await self.session_manager.destroy()
        except (InternalError, RuntimeError, OSError, ValueError) as e:
            logging.error(f"💥 Error destroying session manager: {str(e)}")
        finally:
            self.session_manager = None

    async def _close_http_session(self) -> None:
        """Close the HTTP session gracefully."""
        if not self.session:
            return
        try:
            await self.session.close()
        except (aiohttp.ClientError, OSError, ValueError) as e:
            logging.error(f"💥 Error closing HTTP session: {str(e)}")
        finally:
            self.session = None
