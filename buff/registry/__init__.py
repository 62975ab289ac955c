"""Registry module: credential storage and login/publish sessions.

Public API:
    CredentialStore(path, default_registry)
    RegistrySession(settings, store, client_factory=None)
    GrpcRegistryClient(endpoint, timeout=30.0)
"""

from buff.registry.client import GrpcRegistryClient, LoginClient, PublishClient, RegistryRpcError
from buff.registry.credentials import CredentialStore
from buff.registry.session import RegistrySession
from buff.registry.types import PublishConfirmation

__all__ = [
    "CredentialStore",
    "GrpcRegistryClient",
    "LoginClient",
    "PublishClient",
    "PublishConfirmation",
    "RegistryRpcError",
    "RegistrySession",
]
