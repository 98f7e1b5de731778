"""Declarative description of a login handshake.

A flow is built from a source node, any number of intermediate nodes and one
terminal ``login`` operation. Building a flow performs no I/O; every node only
remembers its predecessor. ``AuthenticationSteps`` materializes the chain into
definition order and is interpreted by ``AuthenticationStepsExecutor``.

Example::

    steps = (
        AuthenticationSteps.from_supplier(build_identity_document)
        .map(sign)
        .login("auth/{mount}/login", "aws")
    )
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar

from ..support.token import Token


class StepKind(Enum):
    """Tag of a step graph node."""

    SUPPLIER = "supplier"
    REQUEST = "request"
    MAP = "map"
    ON_NEXT = "on_next"
    ZIP = "zip"


class _Unset:
    def __repr__(self) -> str:
        return "<unset>"


UNSET: Any = _Unset()


def _describe(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", None) or repr(fn)


@dataclass(frozen=True)
class HttpRequest:
    """Immutable request definition used by request nodes.

    When no body is configured the current pipeline state is sent as body.
    """

    method: str
    uri_template: str
    uri_variables: tuple[Any, ...] | Mapping[str, Any] = ()
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    body: Any = UNSET

    def __post_init__(self) -> None:
        if not self.uri_template:
            raise ValueError("URI template must not be null or empty")

    @classmethod
    def get(cls, uri_template: str, *uri_variables: Any) -> HttpRequest:
        return cls("GET", uri_template, tuple(uri_variables))

    @classmethod
    def post(cls, uri_template: str, *uri_variables: Any) -> HttpRequest:
        return cls("POST", uri_template, tuple(uri_variables))

    @classmethod
    def put(cls, uri_template: str, *uri_variables: Any) -> HttpRequest:
        return cls("PUT", uri_template, tuple(uri_variables))

    def with_headers(self, headers: Mapping[str, str]) -> HttpRequest:
        if headers is None:
            raise ValueError("Headers must not be null")
        return replace(self, headers=MappingProxyType({**self.headers, **headers}))

    def with_body(self, body: Any) -> HttpRequest:
        return replace(self, body=body)

    @property
    def has_body(self) -> bool:
        return self.body is not UNSET

    def __str__(self) -> str:
        return f"{self.method} {self.uri_template}"


class Node:
    """Intermediate step offering the flow operators.

    Subclasses are immutable; each operator returns a new node linked to this one.
    """

    kind: ClassVar[StepKind]
    previous: Node | None

    def map(self, mapper: Callable[[Any], Any]) -> Node:
        """Transform the state object into a different object."""
        if mapper is None:
            raise ValueError("Mapping function must not be null")
        return MapStep(mapper, self)

    def on_next(self, consumer: Callable[[Any], Any]) -> Node:
        """Call back with the current state object, leaving it unchanged."""
        if consumer is None:
            raise ValueError("Consumer function must not be null")
        return OnNextStep(consumer, self)

    def request(self, request: HttpRequest) -> Node:
        """Issue a request; its parsed response becomes the new state."""
        if request is None:
            raise ValueError("HttpRequest must not be null")
        return RequestStep(request, self)

    def zip_with(self, other: Node) -> Node:
        """Evaluate ``other`` independently and pair it with the current state."""
        if other is None:
            raise ValueError("Other node must not be null")
        return ZipStep(other, self)

    def login(
        self,
        target: str | HttpRequest | Callable[[Any], Token],
        *uri_variables: Any,
    ) -> AuthenticationSteps:
        """Terminal operation producing a token.

        ``target`` may be a URI template (the state is POSTed there and the
        ``auth`` block of the response is turned into a token), a custom
        ``HttpRequest``, or a function mapping the state to a ``Token``.
        """
        if isinstance(target, HttpRequest):
            return AuthenticationSteps(RequestStep(target, self))
        if isinstance(target, str):
            return AuthenticationSteps(
                RequestStep(HttpRequest.post(target, *uri_variables), self)
            )
        if callable(target):
            return AuthenticationSteps(MapStep(target, self))
        raise ValueError("Login target must be a URI template, a request or a function")


@dataclass(frozen=True, eq=False)
class SupplierStep(Node):
    kind: ClassVar[StepKind] = StepKind.SUPPLIER

    supplier: Callable[[], Any]
    previous: Node | None = None

    def __str__(self) -> str:
        return f"Supplier: {_describe(self.supplier)}"


@dataclass(frozen=True, eq=False)
class RequestStep(Node):
    kind: ClassVar[StepKind] = StepKind.REQUEST

    definition: HttpRequest
    previous: Node | None = None

    def __str__(self) -> str:
        return f"HTTP request {self.definition}"


@dataclass(frozen=True, eq=False)
class MapStep(Node):
    kind: ClassVar[StepKind] = StepKind.MAP

    mapper: Callable[[Any], Any]
    previous: Node | None = None

    def __str__(self) -> str:
        return f"Map: {_describe(self.mapper)}"


@dataclass(frozen=True, eq=False)
class OnNextStep(Node):
    kind: ClassVar[StepKind] = StepKind.ON_NEXT

    consumer: Callable[[Any], Any]
    previous: Node | None = None

    def __str__(self) -> str:
        return f"Consumer: {_describe(self.consumer)}"


@dataclass(frozen=True, eq=False)
class ZipStep(Node):
    kind: ClassVar[StepKind] = StepKind.ZIP

    other: Node
    previous: Node | None = None

    def __str__(self) -> str:
        return f"Zip: [{' -> '.join(str(n) for n in collect_steps(self.other))}]"


def collect_steps(terminal: Node) -> tuple[Node, ...]:
    """Walk back from ``terminal`` and return the chain oldest first."""
    chain: list[Node] = []
    current: Node | None = terminal
    while current is not None:
        chain.append(current)
        current = current.previous
    chain.reverse()
    return tuple(chain)


class AuthenticationSteps:
    """Finished flow definition; offers no further chaining.

    Instances are immutable and can be executed any number of times.
    """

    __slots__ = ("steps",)

    def __init__(self, terminal: Node) -> None:
        if terminal is None:
            raise ValueError("Terminal node must not be null")
        self.steps: tuple[Node, ...] = collect_steps(terminal)

    @staticmethod
    def just(source: Token | HttpRequest) -> AuthenticationSteps:
        """Flow that yields ``source`` directly (token) or logs in with one request."""
        if isinstance(source, Token):
            return AuthenticationSteps(SupplierStep(lambda: source))
        if isinstance(source, HttpRequest):
            return AuthenticationSteps(RequestStep(source))
        raise ValueError("Source must be a Token or an HttpRequest")

    @staticmethod
    def from_supplier(supplier: Callable[[], Any]) -> Node:
        if supplier is None:
            raise ValueError("Supplier must not be null")
        return SupplierStep(supplier)

    @staticmethod
    def from_value(value: Any) -> Node:
        return SupplierStep(lambda: value)

    @staticmethod
    def from_request(request: HttpRequest) -> Node:
        if request is None:
            raise ValueError("HttpRequest must not be null")
        return RequestStep(request)

    def __len__(self) -> int:
        return len(self.steps)

    def __repr__(self) -> str:
        return f"AuthenticationSteps({' -> '.join(str(s) for s in self.steps)})"
