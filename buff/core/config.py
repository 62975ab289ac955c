"""Process-wide settings for the buff CLI.

Built once at startup from BUFF_* environment variables and defaults, then
passed into CredentialStore and RegistrySession. No other module reads the
environment.

Variables
─────────
• BUFF_HOME             config root override (relative paths resolve
                        against the current directory)
• BUFF_REGISTRY_URL     registry used before any credential exists
• BUFF_TARGET_PATH      package root for publish (default: cwd)
• BUFF_BUILD_DIR        sub-path of the package root that gets archived
• BUFF_IGNORE           extra root-level ignore patterns, comma separated
• BUFF_STRICT_TRAVERSAL abort instead of skipping unreadable subtrees
• BUFF_RPC_TIMEOUT      per-call deadline in seconds
• BUFF_DEBUG            verbose console logging
"""

from pathlib import Path
from typing import Optional

import platformdirs
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "buff"
CONFIG_FILE_NAME = "config.toml"
MANIFEST_FILE_NAME = "buff.toml"
DEFAULT_REGISTRY_URL = "localhost:50051"


class Settings(BaseSettings):
    """Explicit configuration snapshot for one CLI invocation."""

    model_config = SettingsConfigDict(
        env_prefix="BUFF_",
        case_sensitive=False,
        frozen=True,
    )

    home: Optional[Path] = None
    registry_url: str = DEFAULT_REGISTRY_URL
    target_path: Optional[Path] = None
    build_dir: str = "."
    ignore: str = ""
    strict_traversal: bool = False
    rpc_timeout: float = 30.0
    debug: bool = False

    @field_validator("registry_url", mode="before")
    @classmethod
    def strip_registry_url(cls, v: str) -> str:
        return v.strip() or DEFAULT_REGISTRY_URL

    @field_validator("home", "target_path", mode="before")
    @classmethod
    def empty_path_is_unset(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def config_dir(self) -> Path:
        """Directory holding config.toml.

        BUFF_HOME wins over the platform user config directory.
        """
        if self.home is not None:
            return (Path.cwd() / self.home).resolve()
        return platformdirs.user_config_path(APP_NAME)

    def config_path(self) -> Path:
        return self.config_dir() / CONFIG_FILE_NAME

    def package_root(self, override: Optional[Path] = None) -> Path:
        """Package root for publish: explicit argument, BUFF_TARGET_PATH, cwd."""
        if override is not None:
            return Path(override)
        if self.target_path is not None:
            return self.target_path
        return Path.cwd()

    def ignore_patterns(self) -> list[str]:
        return [p.strip() for p in self.ignore.split(",") if p.strip()]


def get_settings(**overrides) -> Settings:
    return Settings(**overrides)
