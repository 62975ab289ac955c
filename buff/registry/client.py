"""Registry client protocols and the gRPC implementation.

RegistrySession only talks to LoginClient / PublishClient. The protocol
approach (structural subtyping) lets tests hand in an in-memory registry
without touching the network.
"""

import logging
from typing import Optional, Protocol, runtime_checkable

import grpc

from buff.packaging.manifest import PackageMetadata
from buff.registry.protocol import (
    LOGIN_METHOD,
    PUBLISH_METHOD,
    LoginRequest,
    LoginResponse,
    Package,
    PublishRequest,
    PublishResponse,
)

logger = logging.getLogger(__name__)

# Default per-call deadline in seconds
DEFAULT_TIMEOUT = 30.0

# Status codes meaning the registry was never really reached
UNREACHABLE_CODES = frozenset({"UNAVAILABLE", "DEADLINE_EXCEEDED"})
UNAUTHENTICATED_CODES = frozenset({"UNAUTHENTICATED", "PERMISSION_DENIED"})


class RegistryRpcError(Exception):
    """Raised by client implementations when a call fails.

    `code` is the gRPC status name (e.g. "UNAUTHENTICATED"); `details` is
    the server's message, if any.
    """

    def __init__(self, code: str, details: str = ""):
        self.code = code
        self.details = details
        super().__init__(f"{code}: {details}" if details else code)

    @property
    def is_unreachable(self) -> bool:
        return self.code in UNREACHABLE_CODES

    @property
    def is_unauthenticated(self) -> bool:
        return self.code in UNAUTHENTICATED_CODES


@runtime_checkable
class LoginClient(Protocol):
    def login(self, email: str, password: str) -> str:
        """Exchange credentials for a registry token.

        Raises:
            RegistryRpcError: On refusal or transport failure.
        """
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class PublishClient(Protocol):
    def publish(self, artifact: bytes, metadata: PackageMetadata, token: str) -> bool:
        """Upload an artifact; returns the registry's acceptance flag.

        Raises:
            RegistryRpcError: On rejection or transport failure.
        """
        ...

    def close(self) -> None:
        ...


class GrpcRegistryClient:
    """LoginClient and PublishClient over an insecure gRPC channel.

    One instance per command; close() releases the channel.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = DEFAULT_TIMEOUT,
        channel: Optional[grpc.Channel] = None,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self._channel = channel if channel is not None else grpc.insecure_channel(endpoint)
        self._login = self._channel.unary_unary(
            LOGIN_METHOD,
            request_serializer=LoginRequest.SerializeToString,
            response_deserializer=LoginResponse.FromString,
        )
        self._publish = self._channel.unary_unary(
            PUBLISH_METHOD,
            request_serializer=PublishRequest.SerializeToString,
            response_deserializer=PublishResponse.FromString,
        )

    def login(self, email: str, password: str) -> str:
        logger.debug("Calling %s on %s", LOGIN_METHOD, self.endpoint)
        request = LoginRequest(email=email, password=password)
        try:
            response = self._login(request, timeout=self.timeout)
        except grpc.RpcError as exc:
            raise _to_registry_error(exc) from exc
        return response.token

    def publish(self, artifact: bytes, metadata: PackageMetadata, token: str) -> bool:
        logger.debug(
            "Calling %s on %s (%d bytes)", PUBLISH_METHOD, self.endpoint, len(artifact),
        )
        request = PublishRequest(
            artifact=artifact,
            package=Package(
                name=metadata.name,
                description=metadata.description,
                homepage=metadata.homepage,
                repository_url=metadata.repository_url,
                keywords=list(metadata.keywords),
                version=metadata.version or "",
            ),
        )
        try:
            response = self._publish(
                request,
                timeout=self.timeout,
                metadata=(("authorization", f"Bearer {token}"),),
            )
        except grpc.RpcError as exc:
            raise _to_registry_error(exc) from exc
        return response.result

    def close(self) -> None:
        self._channel.close()

    def __enter__(self) -> "GrpcRegistryClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _to_registry_error(exc: grpc.RpcError) -> RegistryRpcError:
    code = exc.code() if hasattr(exc, "code") else None
    details = exc.details() if hasattr(exc, "details") else ""
    name = code.name if code is not None else "UNKNOWN"
    return RegistryRpcError(name, details or "")
