"""Custom exception hierarchy for skyforge.

All skyforge-specific exceptions inherit from SkyforgeError, enabling
callers to catch every reconciliation failure with a single except clause.
"""

from __future__ import annotations


class SkyforgeError(Exception):
    """Base exception for all skyforge errors."""


class ProviderError(SkyforgeError):
    """Raised when a cloud provider API call fails."""


class ProviderInconsistencyError(ProviderError):
    """Raised when a tag resolves to a number of provider objects other than one."""

    def __init__(self, tag: str, count: int, kind: str = "droplets") -> None:
        self.tag = tag
        self.count = count
        super().__init__(f"Found [{count}] {kind} for tag [{tag}]")


class ConfigurationError(SkyforgeError):
    """Raised for invalid configuration or missing required settings."""


class BootstrapAssetNotFoundError(ConfigurationError):
    """Raised when a bootstrap script cannot be found in the asset store."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Bootstrap asset not found: {name}")


class TemplateError(ConfigurationError):
    """Raised when a bootstrap template is malformed."""


class InvalidSSHIdentifierError(ConfigurationError):
    """Raised when the SSH key identifier is not a provider key id."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Invalid SSH key identifier: {identifier!r}")


class AuthenticationError(SkyforgeError):
    """Raised when the SSH private key cannot be parsed - do not retry."""


class RemoteUnavailableError(SkyforgeError):
    """Raised when the remote host or file is not available yet."""


class TimeoutError(SkyforgeError):  # noqa: A001
    """Raised when an operation exceeds its wait budget."""


class RetryExhaustedError(TimeoutError):
    """Raised when a bounded retry loop runs out of attempts."""

    def __init__(self, message: str, attempts: int, last_error: BaseException | None = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(message)


class MasterNotFoundError(RetryExhaustedError):
    """Raised when the master droplet never became discoverable."""


class KubeconfigTimeoutError(RetryExhaustedError):
    """Raised when the kubeconfig could not be fetched within the budget."""
