"""vaultkeeper: login pipelines and lease lifecycle management for a secret store."""

__version__ = "1.0.0"
