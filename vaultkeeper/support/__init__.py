"""Value types shared by the authentication pipeline and the lease container."""

from .lease import Lease
from .response import SecretResponse
from .token import LoginToken, Token

__all__ = ["Lease", "LoginToken", "SecretResponse", "Token"]
