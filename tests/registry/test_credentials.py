"""Tests for the TOML-backed credential store."""

import os
import sys
import tomllib

import pytest

from buff.core.config import Settings
from buff.core.errors import ConfigError
from buff.registry.credentials import CredentialStore
from tests.conftest import STUB_ENDPOINT, write_file

EXISTING_CONFIG = """
preferred_registry = "localhost:50051"

[registries."localhost:50051"]
token = "token1"

[registries."localhost:50052"]
token = "token2"
"""


class TestLoad:
    def test_missing_file_starts_empty_with_default_registry(self, buff_home):
        store = CredentialStore(buff_home / "config.toml", "registry.example:443")
        assert store.registries == {}
        assert store.preferred_registry == "registry.example:443"

    def test_loading_does_not_create_file(self, buff_home):
        CredentialStore(buff_home / "config.toml", STUB_ENDPOINT)
        assert not (buff_home / "config.toml").exists()

    def test_existing_file(self, buff_home):
        write_file(buff_home / "config.toml", EXISTING_CONFIG)
        store = CredentialStore(buff_home / "config.toml", "ignored:1")
        assert store.preferred_registry == "localhost:50051"
        assert store.registries == {
            "localhost:50051": "token1",
            "localhost:50052": "token2",
        }

    def test_file_without_preferred_registry_uses_default(self, buff_home):
        write_file(buff_home / "config.toml", '[registries."a:1"]\ntoken = "t"\n')
        store = CredentialStore(buff_home / "config.toml", "fallback:9")
        assert store.preferred_registry == "fallback:9"
        assert store.get_token("a:1") == "t"

    def test_malformed_toml_raises_config_error(self, buff_home):
        write_file(buff_home / "config.toml", "preferred_registry = \n[[[")
        with pytest.raises(ConfigError, match="Malformed"):
            CredentialStore(buff_home / "config.toml", STUB_ENDPOINT)

    def test_wrong_shape_raises_config_error(self, buff_home):
        write_file(buff_home / "config.toml", '[registries."a:1"]\nnot_token = 1\n')
        with pytest.raises(ConfigError, match="Invalid"):
            CredentialStore(buff_home / "config.toml", STUB_ENDPOINT)

    def test_from_settings_uses_buff_home(self, buff_home):
        write_file(buff_home / "config.toml", EXISTING_CONFIG)
        store = CredentialStore.from_settings(Settings(home=buff_home))
        assert store.path == buff_home / "config.toml"
        assert store.get_token("localhost:50052") == "token2"


class TestMutation:
    def test_get_token_unknown_registry(self, store):
        assert store.get_token("nowhere:1") is None

    def test_add_registry_is_idempotent(self, store):
        store.add_registry("a:1", "t")
        first = store.registries
        store.add_registry("a:1", "t")
        assert store.registries == first == {"a:1": "t"}

    def test_add_registry_overwrites(self, store):
        store.add_registry("a:1", "old")
        store.add_registry("a:1", "new")
        assert store.get_token("a:1") == "new"

    def test_add_registry_isolated_from_other_urls(self, store):
        store.add_registry("a:1", "ta")
        store.add_registry("b:2", "tb")
        store.add_registry("a:1", "ta2")
        assert store.get_token("b:2") == "tb"

    def test_add_registry_keeps_preferred_registry(self, store):
        before = store.preferred_registry
        store.add_registry("other:9", "t")
        assert store.preferred_registry == before

    def test_registries_returns_copy(self, store):
        store.add_registry("a:1", "t")
        snapshot = store.registries
        snapshot["a:1"] = "tampered"
        assert store.get_token("a:1") == "t"


class TestSave:
    def test_save_then_reload(self, settings):
        store = CredentialStore.from_settings(settings)
        for i in range(3):
            store.add_registry(f"host{i}:1", f"t{i}")
        store.add_registry(STUB_ENDPOINT, "newtoken")
        store.save()

        reloaded = CredentialStore.from_settings(settings)
        assert reloaded.get_token(STUB_ENDPOINT) == "newtoken"
        assert len(reloaded.registries) == 4
        assert reloaded.preferred_registry == STUB_ENDPOINT

    def test_saved_document_layout(self, store):
        store.add_registry("localhost:50051", "abc")
        store.save()
        with open(store.path, "rb") as fh:
            data = tomllib.load(fh)
        assert data == {
            "preferred_registry": STUB_ENDPOINT,
            "registries": {"localhost:50051": {"token": "abc"}},
        }

    def test_save_creates_missing_parent_dirs(self, tmp_path):
        path = tmp_path / "a" / "b" / "buff" / "config.toml"
        store = CredentialStore(path, STUB_ENDPOINT)
        store.add_registry("x:1", "t")
        store.save()
        assert path.exists()

    def test_save_overwrites_instead_of_merging(self, buff_home):
        path = buff_home / "config.toml"
        write_file(path, EXISTING_CONFIG)
        store = CredentialStore(path, STUB_ENDPOINT)

        # An external edit after load is lost on save
        write_file(path, EXISTING_CONFIG + '\n[registries."late:1"]\ntoken = "late"\n')
        store.save()

        assert CredentialStore(path, STUB_ENDPOINT).get_token("late:1") is None

    @pytest.mark.skipif(
        sys.platform == "win32" or (hasattr(os, "geteuid") and os.geteuid() == 0),
        reason="permission bits are not enforced here",
    )
    def test_unwritable_location_raises_config_error(self, tmp_path):
        locked = tmp_path / "locked"
        locked.mkdir()
        locked.chmod(0o500)
        try:
            store = CredentialStore(locked / "buff" / "config.toml", STUB_ENDPOINT)
            with pytest.raises(ConfigError, match="Cannot write"):
                store.save()
        finally:
            locked.chmod(0o755)
