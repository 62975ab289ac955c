"""Shared fixtures: an in-memory registry and isolated settings."""

import gzip
import io
import tarfile
from pathlib import Path
from typing import Optional

import pytest

from buff.core.config import Settings
from buff.packaging.manifest import PackageMetadata
from buff.registry.client import RegistryRpcError
from buff.registry.credentials import CredentialStore

STUB_TOKEN = "tok123"
STUB_ENDPOINT = "localhost:50051"


class StubRegistryClient:
    """In-memory LoginClient + PublishClient.

    Records every call so tests can inspect what would have gone over the
    wire. Set `login_error` / `publish_error` to make calls fail.
    """

    def __init__(self, endpoint: str, token: str = STUB_TOKEN):
        self.endpoint = endpoint
        self.token = token
        self.login_error: Optional[RegistryRpcError] = None
        self.publish_error: Optional[RegistryRpcError] = None
        self.accept = True
        self.logins: list[tuple[str, str]] = []
        self.publishes: list[tuple[bytes, PackageMetadata, str]] = []
        self.closed = False

    def login(self, email: str, password: str) -> str:
        self.logins.append((email, password))
        if self.login_error:
            raise self.login_error
        return self.token

    def publish(self, artifact: bytes, metadata: PackageMetadata, token: str) -> bool:
        self.publishes.append((artifact, metadata, token))
        if self.publish_error:
            raise self.publish_error
        return self.accept

    def close(self) -> None:
        self.closed = True


class StubRegistryFactory:
    """Client factory handing out one StubRegistryClient per endpoint."""

    def __init__(self):
        self.clients: dict[str, StubRegistryClient] = {}

    def __call__(self, endpoint: str) -> StubRegistryClient:
        if endpoint not in self.clients:
            self.clients[endpoint] = StubRegistryClient(endpoint)
        return self.clients[endpoint]

    def client(self, endpoint: str = STUB_ENDPOINT) -> StubRegistryClient:
        return self(endpoint)


def write_file(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def unpack_artifact(data: bytes) -> dict[str, Optional[bytes]]:
    """Map member name → content (None for directories and links)."""
    members: dict[str, Optional[bytes]] = {}
    with tarfile.open(fileobj=io.BytesIO(gzip.decompress(data)), mode="r:") as tar:
        for member in tar.getmembers():
            if member.isfile():
                members[member.name] = tar.extractfile(member).read()
            else:
                members[member.name] = None
    return members


def artifact_files(data: bytes) -> dict[str, bytes]:
    return {k: v for k, v in unpack_artifact(data).items() if v is not None}


@pytest.fixture
def buff_home(tmp_path) -> Path:
    home = tmp_path / "buff_home"
    home.mkdir()
    return home


@pytest.fixture
def settings(buff_home) -> Settings:
    return Settings(home=buff_home, registry_url=STUB_ENDPOINT)


@pytest.fixture
def store(settings) -> CredentialStore:
    return CredentialStore.from_settings(settings)


@pytest.fixture
def registry() -> StubRegistryFactory:
    return StubRegistryFactory()


@pytest.fixture(autouse=True)
def _clean_buff_env(monkeypatch):
    """Keep the developer's BUFF_* variables out of the tests."""
    for name in (
        "BUFF_HOME", "BUFF_REGISTRY_URL", "BUFF_TARGET_PATH", "BUFF_BUILD_DIR",
        "BUFF_IGNORE", "BUFF_STRICT_TRAVERSAL", "BUFF_RPC_TIMEOUT", "BUFF_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
