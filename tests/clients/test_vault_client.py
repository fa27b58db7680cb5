"""Tests for VaultClient - HashiCorp Vault secrets management."""

from unittest.mock import MagicMock, patch

import pytest
from hvac.exceptions import InvalidPath, Forbidden

import clients.vault_client as vault_module
from clients.vault_client import VaultClient, VaultError, get_database_url


@pytest.fixture
def vault_env(monkeypatch):
    monkeypatch.setenv("VAULT_ADDR", "https://vault.test:8200")
    monkeypatch.setenv("VAULT_ROLE_ID", "role")
    monkeypatch.setenv("VAULT_SECRET_ID", "secret")
    monkeypatch.delenv("VAULT_NAMESPACE", raising=False)


@pytest.fixture
def hvac_client():
    """Patched hvac.Client that authenticates and serves finance/database."""
    with patch("clients.vault_client.hvac.Client") as client_cls:
        client = client_cls.return_value
        client.auth.approle.login.return_value = {"auth": {"client_token": "tok"}}
        client.is_authenticated.return_value = True
        client.secrets.kv.v2.read_secret_version.return_value = {
            "data": {"data": {"url": "postgresql://finance@db/finance"}}
        }
        yield client


@pytest.fixture(autouse=True)
def reset_vault_singleton():
    vault_module._vault_client_instance = None
    vault_module._secret_cache.clear()
    yield
    vault_module._vault_client_instance = None
    vault_module._secret_cache.clear()


class TestVaultClientInit:
    """Initialization and authentication."""

    def test_missing_vault_addr_raises(self, monkeypatch):
        """VAULT_ADDR required."""
        monkeypatch.delenv("VAULT_ADDR", raising=False)
        with pytest.raises(VaultError, match="VAULT_ADDR"):
            VaultClient()

    def test_missing_approle_credentials_raises(self, vault_env, monkeypatch):
        """VAULT_ROLE_ID and VAULT_SECRET_ID required."""
        monkeypatch.delenv("VAULT_ROLE_ID")
        with pytest.raises(VaultError, match="VAULT_ROLE_ID"):
            VaultClient()

    def test_rejected_approle_raises(self, vault_env, hvac_client):
        """Rejected AppRole credentials fail authentication."""
        hvac_client.auth.approle.login.side_effect = Forbidden("denied")
        with pytest.raises(VaultError, match="AppRole authentication failed"):
            VaultClient()

    def test_valid_approle_authenticates(self, vault_env, hvac_client):
        client = VaultClient()
        assert client.client.token == "tok"


class TestGetSecret:
    """Secret retrieval - paths automatically scoped to finance/."""

    def test_reads_under_finance_prefix(self, vault_env, hvac_client):
        url = VaultClient().get_secret("database", "url")

        assert url == "postgresql://finance@db/finance"
        hvac_client.secrets.kv.v2.read_secret_version.assert_called_once_with(
            path="finance/database", raise_on_deleted_version=True
        )

    def test_missing_path_raises(self, vault_env, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.side_effect = InvalidPath("nope")
        with pytest.raises(VaultError, match="finance/nonexistent"):
            VaultClient().get_secret("nonexistent", "field")

    def test_missing_field_raises_keyerror(self, vault_env, hvac_client):
        with pytest.raises(KeyError, match="not found"):
            VaultClient().get_secret("database", "nonexistent_field")


class TestGetDatabaseUrl:
    """DATABASE_URL first, Vault second."""

    def test_environment_wins(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://local/finance_test")
        assert get_database_url() == "postgresql://local/finance_test"

    def test_falls_back_to_vault_and_caches(self, vault_env, hvac_client, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)

        assert get_database_url() == "postgresql://finance@db/finance"
        assert get_database_url() == "postgresql://finance@db/finance"
        assert hvac_client.secrets.kv.v2.read_secret_version.call_count == 1
