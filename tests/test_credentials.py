"""Tests for credential storage."""

import os
from unittest.mock import MagicMock, patch

import keyring.errors
import pytest

from mbtf.credentials import (
    SERVICE_NAME,
    CredentialStore,
    CredentialType,
    get_metabase_api_key,
)


@pytest.fixture
def store() -> CredentialStore:
    return CredentialStore(console=MagicMock())


class TestCredentialType:
    """Tests for CredentialType."""

    def test_env_vars(self) -> None:
        assert CredentialType.METABASE_PASSWORD.env_var == "MBTF_METABASE_PASSWORD"
        assert CredentialType.METABASE_API_KEY.env_var == "MBTF_METABASE_API_KEY"

    def test_display_names(self) -> None:
        assert CredentialType.METABASE_API_KEY.display_name == "Metabase API Key"


class TestCredentialStore:
    """Tests for CredentialStore resolution order."""

    def test_environment_wins(self, store: CredentialStore) -> None:
        with patch.dict(os.environ, {"MBTF_METABASE_PASSWORD": "from-env"}):
            with patch("mbtf.credentials.keyring.get_password") as get_password:
                assert store.get(CredentialType.METABASE_PASSWORD) == "from-env"
        get_password.assert_not_called()

    def test_keychain(self, store: CredentialStore) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with patch(
                "mbtf.credentials.keyring.get_password", return_value="from-keychain"
            ) as get_password:
                assert store.get(CredentialType.METABASE_API_KEY) == "from-keychain"
        get_password.assert_called_once_with(SERVICE_NAME, "metabase-api-key")

    def test_missing_without_prompt(self, store: CredentialStore) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with patch("mbtf.credentials.keyring.get_password", return_value=None):
                assert store.get(CredentialType.METABASE_PASSWORD) is None
        store.console.input.assert_not_called()

    def test_keychain_unavailable(self, store: CredentialStore) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with patch(
                "mbtf.credentials.keyring.get_password",
                side_effect=keyring.errors.KeyringError("no backend"),
            ):
                assert store.get(CredentialType.METABASE_PASSWORD) is None

    def test_prompt_and_save(self, store: CredentialStore) -> None:
        store.console.input.side_effect = ["hunter2", "y"]
        with patch.dict(os.environ, {}, clear=True):
            with patch("mbtf.credentials.keyring.get_password", return_value=None):
                with patch("mbtf.credentials.keyring.set_password") as set_password:
                    value = store.get(
                        CredentialType.METABASE_PASSWORD, prompt_if_missing=True
                    )

        assert value == "hunter2"
        set_password.assert_called_once_with(SERVICE_NAME, "metabase-password", "hunter2")

    def test_prompt_without_saving(self, store: CredentialStore) -> None:
        store.console.input.side_effect = ["hunter2", "n"]
        with patch.dict(os.environ, {}, clear=True):
            with patch("mbtf.credentials.keyring.get_password", return_value=None):
                with patch("mbtf.credentials.keyring.set_password") as set_password:
                    value = store.get(
                        CredentialType.METABASE_PASSWORD, prompt_if_missing=True
                    )

        assert value == "hunter2"
        set_password.assert_not_called()

    def test_empty_prompt_cancels(self, store: CredentialStore) -> None:
        store.console.input.side_effect = [""]
        with patch.dict(os.environ, {}, clear=True):
            with patch("mbtf.credentials.keyring.get_password", return_value=None):
                assert (
                    store.get(CredentialType.METABASE_PASSWORD, prompt_if_missing=True)
                    is None
                )

    def test_delete_missing_credential(self, store: CredentialStore) -> None:
        with patch(
            "mbtf.credentials.keyring.delete_password",
            side_effect=keyring.errors.PasswordDeleteError("not found"),
        ):
            assert store.delete(CredentialType.METABASE_API_KEY) is False

    def test_set_without_keychain(self, store: CredentialStore) -> None:
        with patch(
            "mbtf.credentials.keyring.set_password",
            side_effect=keyring.errors.KeyringError("no backend"),
        ):
            assert store.set(CredentialType.METABASE_API_KEY, "k") is False


class TestConvenienceFunctions:
    """Tests for module-level helpers."""

    def test_api_key_is_never_prompted(self) -> None:
        mock_store = MagicMock()
        mock_store.get.return_value = None
        with patch("mbtf.credentials.get_credential_store", return_value=mock_store):
            assert get_metabase_api_key() is None
        mock_store.get.assert_called_once_with(CredentialType.METABASE_API_KEY)
