"""Interpreter for ``AuthenticationSteps``."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any

from ..constants import TRANSPORT_TIMEOUT_SECONDS
from ..errors.internal import PipelineError, TransportError
from ..support.token import LoginToken, Token
from ..transport.base import Transport
from .steps import (
    AuthenticationSteps,
    HttpRequest,
    MapStep,
    Node,
    OnNextStep,
    RequestStep,
    SupplierStep,
    ZipStep,
    collect_steps,
)


class AuthenticationStepsExecutor:
    """Walks a step graph once per ``login()`` call.

    Every run starts from an absent state, so one graph can be executed again
    for a re-login without any state carried over from a previous run.

    Args:
        steps: The finished flow definition.
        transport: Transport used by request nodes.
        timeout: Upper bound in seconds for awaitable suppliers and mappers.
    """

    def __init__(
        self,
        steps: AuthenticationSteps,
        transport: Transport,
        *,
        timeout: float = TRANSPORT_TIMEOUT_SECONDS,
    ) -> None:
        if steps is None:
            raise ValueError("AuthenticationSteps must not be null")
        if transport is None:
            raise ValueError("Transport must not be null")
        self.steps = steps
        self.transport = transport
        self.timeout = timeout

    def get_authentication_steps(self) -> AuthenticationSteps:
        return self.steps

    async def login(self) -> Token:
        """Execute the flow and return the resulting token.

        Raises:
            PipelineError: If any step fails or the flow yields no token.
        """
        nodes = self.steps.steps
        logging.debug(f"🔐 Executing authentication flow with {len(nodes)} step(s)")
        state = await self._evaluate(nodes, None)
        token = self._to_token(nodes[-1], state)
        logging.debug(f"✅ Authentication flow produced {type(token).__name__}")
        return token

    async def _evaluate(self, nodes: tuple[Node, ...], state: Any) -> Any:
        for node in nodes:
            state = await self._evaluate_node(node, state)
        return state

    async def _evaluate_node(self, node: Node, state: Any) -> Any:
        match node:
            case SupplierStep(supplier=supplier):
                return await self._invoke(node, state, supplier)
            case RequestStep(definition=definition):
                return await self._request(node, definition, state)
            case MapStep(mapper=mapper):
                return await self._invoke(node, state, mapper, state)
            case OnNextStep(consumer=consumer):
                await self._invoke(node, state, consumer, state)
                return state
            case ZipStep(other=other):
                paired = await self._evaluate(collect_steps(other), None)
                return (state, paired)
        raise PipelineError(f"Unsupported step {node}", step=str(node), state=state)

    async def _invoke(
        self, node: Node, state: Any, fn: Callable[..., Any], *args: Any
    ) -> Any:
        try:
            result = fn(*args)
            if inspect.isawaitable(result):
                async with asyncio.timeout(self.timeout):
                    result = await result
            return result
        except PipelineError:
            raise
        except TimeoutError as e:
            raise PipelineError(
                f"{node} in state {state} timed out after {self.timeout}s",
                step=str(node),
                state=state,
            ) from e
        except Exception as e:
            raise PipelineError.from_cause(str(node), state, e) from e

    async def _request(self, node: Node, definition: HttpRequest, state: Any) -> Any:
        body = definition.body if definition.has_body else state
        try:
            response = await self.transport.send(
                definition.method,
                definition.uri_template,
                definition.uri_variables,
                dict(definition.headers),
                body,
            )
        except (TransportError, ValueError) as e:
            raise PipelineError.from_cause(str(node), state, e) from e
        if not response.is_success:
            raise PipelineError.from_response(
                str(node), state, response.status, response.body
            )
        return response.body

    @staticmethod
    def _to_token(node: Node, state: Any) -> Token:
        if isinstance(state, Token):
            return state
        if isinstance(state, Mapping) and "auth" in state:
            try:
                return LoginToken.from_auth(state["auth"])
            except ValueError as e:
                raise PipelineError.from_cause(str(node), state, e) from e
        raise PipelineError(
            f"{node} did not produce a token but {type(state).__name__}",
            step=str(node),
            state=state,
        )
