"""
Configuration constants for vaultkeeper

This module contains the tunable defaults used throughout the library.
Each constant can be overridden by setting an environment variable with the same name.
"""

import os


def _get_env_int(name: str, default: int) -> int:
    """Retrieve an integer value from an environment variable.

    Attempts to parse the environment variable as an integer. If the variable
    is not set or cannot be parsed, prints a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default integer value to return if parsing fails.

    Returns:
        The parsed integer value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            print(
                f"Warning: Invalid integer value for {name}='{value}', using default {default}"
            )
    return default


def _get_env_float(name: str, default: float) -> float:
    """Retrieve a float value from an environment variable.

    Attempts to parse the environment variable as a float. If the variable
    is not set or cannot be parsed, prints a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default float value to return if parsing fails.

    Returns:
        The parsed float value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            print(
                f"Warning: Invalid float value for {name}='{value}', using default {default}"
            )
    return default


# Lease renewal timing (seconds)
LEASE_MIN_RENEWAL_SECONDS = _get_env_float("LEASE_MIN_RENEWAL_SECONDS", 10.0)
LEASE_EXPIRY_THRESHOLD_SECONDS = _get_env_float("LEASE_EXPIRY_THRESHOLD_SECONDS", 60.0)

# Transport
TRANSPORT_TIMEOUT_SECONDS = _get_env_float("TRANSPORT_TIMEOUT_SECONDS", 30.0)
TRANSPORT_MAX_ATTEMPTS = _get_env_int("TRANSPORT_MAX_ATTEMPTS", 3)
TRANSPORT_BACKOFF_MAX_SECONDS = _get_env_float("TRANSPORT_BACKOFF_MAX_SECONDS", 10.0)

# Service endpoint defaults
VAULT_DEFAULT_SCHEME = os.getenv("VAULT_DEFAULT_SCHEME", "https")
VAULT_DEFAULT_HOST = os.getenv("VAULT_DEFAULT_HOST", "localhost")
VAULT_DEFAULT_PORT = _get_env_int("VAULT_DEFAULT_PORT", 8200)
VAULT_TOKEN_HEADER = "X-Vault-Token"

# Error aggregation
ERROR_ALERT_RATE_PER_HOUR = _get_env_float("ERROR_ALERT_RATE_PER_HOUR", 10.0)
