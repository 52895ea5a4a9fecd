"""Core types shared across skyforge."""

from skyforge.core.exceptions import (
    AuthenticationError,
    BootstrapAssetNotFoundError,
    ConfigurationError,
    InvalidSSHIdentifierError,
    KubeconfigTimeoutError,
    MasterNotFoundError,
    ProviderError,
    ProviderInconsistencyError,
    RemoteUnavailableError,
    RetryExhaustedError,
    SkyforgeError,
    TemplateError,
    TimeoutError,
)

__all__ = [
    "AuthenticationError",
    "BootstrapAssetNotFoundError",
    "ConfigurationError",
    "InvalidSSHIdentifierError",
    "KubeconfigTimeoutError",
    "MasterNotFoundError",
    "ProviderError",
    "ProviderInconsistencyError",
    "RemoteUnavailableError",
    "RetryExhaustedError",
    "SkyforgeError",
    "TemplateError",
    "TimeoutError",
]
