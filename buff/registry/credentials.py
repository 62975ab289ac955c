"""Credential store — registry URL → token mapping persisted as TOML.

The document lives at `<config dir>/config.toml`:

    preferred_registry = "localhost:50051"

    [registries."localhost:50051"]
    token = "..."

It is loaded once when the store is constructed and rewritten wholesale by
save(). There is no file locking: two CLI invocations saving at the same
time can lose one of the writes.
"""

import logging
import tomllib
from pathlib import Path
from typing import Optional

import tomli_w
from pydantic import BaseModel, ValidationError

from buff.core.config import Settings
from buff.core.errors import ConfigError, describe_validation_error

logger = logging.getLogger(__name__)


class RegistryConfig(BaseModel):
    token: str


class CredentialDocument(BaseModel):
    """Shape of config.toml."""

    preferred_registry: str
    registries: dict[str, RegistryConfig] = {}


class CredentialStore:
    """Owns the registry credentials for the lifetime of the process."""

    def __init__(self, path: Path, default_registry: str):
        self.path = Path(path)
        self._document = self._load(default_registry)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialStore":
        return cls(settings.config_path(), settings.registry_url)

    @property
    def preferred_registry(self) -> str:
        return self._document.preferred_registry

    @property
    def registries(self) -> dict[str, str]:
        """Copy of the url → token mapping."""
        return {url: cfg.token for url, cfg in self._document.registries.items()}

    def get_token(self, url: str) -> Optional[str]:
        cfg = self._document.registries.get(url)
        return cfg.token if cfg else None

    def add_registry(self, url: str, token: str) -> None:
        """Insert or overwrite the credential for `url`. Other URLs are untouched."""
        self._document.registries[url] = RegistryConfig(token=token)

    def save(self) -> None:
        """Overwrite the config file with the in-memory state.

        Raises:
            ConfigError: If the directory or file cannot be written.
        """
        content = tomli_w.dumps(self._document.model_dump())
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot write config file {self.path}: {exc}") from exc
        logger.debug(
            "Saved %d registry credential(s) to %s",
            len(self._document.registries), self.path,
        )

    def _load(self, default_registry: str) -> CredentialDocument:
        if not self.path.exists():
            logger.debug("No config at %s; starting empty", self.path)
            return CredentialDocument(preferred_registry=default_registry)

        try:
            with open(self.path, "rb") as fh:
                data = tomllib.load(fh)
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {self.path}: {exc}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Malformed config file {self.path}: {exc}") from exc

        # An older file may predate preferred_registry
        data.setdefault("preferred_registry", default_registry)
        try:
            return CredentialDocument.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(
                f"Invalid config file {self.path}: {describe_validation_error(exc)}"
            ) from exc
