"""Registry session — drives the Login and Publish exchanges.

Each call is a single request/response against one registry endpoint;
nothing is retried. The target endpoint is, in order:

1. the explicit `registry` argument,
2. the credential store's preferred registry,
3. Settings.registry_url.

Login only mutates the credential store after the registry hands back a
token, so a refused login leaves the config file exactly as it was.

Publish sends the manifest as the structured `PublishRequest.package` field;
the archive itself no longer carries buff.toml.
"""

import functools
import logging
from pathlib import Path
from typing import Callable, Optional, Union

from buff.core.config import MANIFEST_FILE_NAME, Settings
from buff.core.errors import (
    ArchiveError,
    AuthError,
    CompressionError,
    ManifestError,
    PublishError,
    TraversalError,
)
from buff.packaging import build_artifact, load_manifest
from buff.registry.client import GrpcRegistryClient, LoginClient, PublishClient, RegistryRpcError
from buff.registry.credentials import CredentialStore
from buff.registry.types import PublishConfirmation

logger = logging.getLogger(__name__)

RegistryClient = Union[LoginClient, PublishClient]
ClientFactory = Callable[[str], RegistryClient]


class RegistrySession:
    """Login/publish orchestration for one CLI invocation."""

    def __init__(
        self,
        settings: Settings,
        store: CredentialStore,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.settings = settings
        self.store = store
        self._client_factory = client_factory or functools.partial(
            GrpcRegistryClient, timeout=settings.rpc_timeout,
        )

    def resolve_endpoint(self, registry: Optional[str] = None) -> str:
        if registry:
            return registry
        if self.store.preferred_registry:
            return self.store.preferred_registry
        return self.settings.registry_url

    def login(self, email: str, password: str, registry: Optional[str] = None) -> str:
        """Exchange email/password for a token and persist it.

        Returns:
            The token issued by the registry.

        Raises:
            AuthError: Missing credentials, refused login or unreachable registry.
            ConfigError: The token could not be saved.
        """
        if not email or not password:
            raise AuthError("Both email and password are required")

        endpoint = self.resolve_endpoint(registry)
        logger.info("Logging in to %s as %s", endpoint, email)

        client = self._client_factory(endpoint)
        try:
            token = client.login(email, password)
        except RegistryRpcError as exc:
            if exc.is_unauthenticated:
                raise AuthError(f"Invalid credentials for registry {endpoint}") from exc
            if exc.is_unreachable:
                raise AuthError(f"Registry {endpoint} is unreachable ({exc.code})") from exc
            raise AuthError(f"Login to {endpoint} failed: {exc}") from exc
        finally:
            client.close()

        if not token:
            raise AuthError(f"Registry {endpoint} returned an empty token")

        self.store.add_registry(endpoint, token)
        self.store.save()
        logger.info("Stored token for %s", endpoint)
        return token

    def publish(
        self,
        package_path: Optional[Path] = None,
        registry: Optional[str] = None,
    ) -> PublishConfirmation:
        """Build the package artifact and send it to the registry.

        Raises:
            PublishError: With reason missing_credential, artifact,
                rejected or unreachable.
        """
        endpoint = self.resolve_endpoint(registry)
        token = self.store.get_token(endpoint)
        if not token:
            raise PublishError(
                PublishError.MISSING_CREDENTIAL,
                f"No credential stored for registry {endpoint}; run `buff login` first",
            )

        package_root = self.settings.package_root(package_path)
        manifest_path = package_root / MANIFEST_FILE_NAME
        try:
            metadata = load_manifest(manifest_path)
        except ManifestError as exc:
            raise PublishError(PublishError.ARTIFACT, exc.message, cause=exc) from exc

        build_root = package_root / self.settings.build_dir
        try:
            artifact = build_artifact(
                build_root,
                extra_ignores=self.settings.ignore_patterns(),
                exclude=_manifest_exclusion(manifest_path, build_root),
                skip_unreadable=not self.settings.strict_traversal,
            )
        except (TraversalError, ArchiveError, CompressionError) as exc:
            raise PublishError(
                PublishError.ARTIFACT,
                f"Could not build artifact for {metadata.name}: {exc.message}",
                cause=exc,
            ) from exc

        logger.info(
            "Publishing %s (%d bytes) to %s", metadata.name, len(artifact), endpoint,
        )

        client = self._client_factory(endpoint)
        try:
            accepted = client.publish(artifact, metadata, token)
        except RegistryRpcError as exc:
            if exc.is_unreachable:
                raise PublishError(
                    PublishError.UNREACHABLE,
                    f"Registry {endpoint} is unreachable ({exc.code})",
                    cause=exc,
                ) from exc
            raise PublishError(
                PublishError.REJECTED,
                f"Registry {endpoint} rejected {metadata.name}: {exc}",
                cause=exc,
            ) from exc
        finally:
            client.close()

        if not accepted:
            raise PublishError(
                PublishError.REJECTED,
                f"Registry {endpoint} did not accept {metadata.name}",
            )

        return PublishConfirmation(
            registry=endpoint,
            package_name=metadata.name,
            version=metadata.version,
            artifact_size=len(artifact),
        )


def _manifest_exclusion(manifest_path: Path, build_root: Path) -> list[str]:
    """Relative path of the manifest inside the build root, if it is there.

    The manifest travels as structured metadata, not as artifact payload.
    """
    try:
        relative = manifest_path.resolve().relative_to(build_root.resolve())
    except ValueError:
        return []
    return [relative.as_posix()]
