"""Secrets a caller registers interest in."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class LeaseMode(Enum):
    """How the container keeps a secret alive."""

    NONE = "none"
    RENEWABLE = "renewable"
    ROTATING = "rotating"


@dataclass(frozen=True)
class RequestedSecret:
    """A secret path plus the lease mode used to maintain it.

    Renewable secrets are renewed until their lease runs into the expiry
    window. Rotating secrets are renewed while possible and fetched again once
    the lease expires, producing new secret data.
    """

    path: str
    mode: LeaseMode = LeaseMode.RENEWABLE

    def __post_init__(self) -> None:
        if not self.path or not self.path.strip("/"):
            raise ValueError("Path name must not be empty")
        object.__setattr__(self, "path", self.path.strip("/"))
        if not isinstance(self.mode, LeaseMode):
            object.__setattr__(self, "mode", LeaseMode(self.mode))

    @classmethod
    def renewable(cls, path: str) -> RequestedSecret:
        return cls(path, LeaseMode.RENEWABLE)

    @classmethod
    def rotating(cls, path: str) -> RequestedSecret:
        return cls(path, LeaseMode.ROTATING)

    @classmethod
    def static(cls, path: str) -> RequestedSecret:
        """Secret fetched once and never renewed or rotated."""
        return cls(path, LeaseMode.NONE)

    def __str__(self) -> str:
        return f"{self.mode.value}:{self.path}"
