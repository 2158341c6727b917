"""Metabase credentials kept out of mbtf.yml.

A credential is looked up in this order:
1. An environment variable (CI and automation)
2. The system keychain (macOS Keychain, Windows Credential Locker,
   Linux Secret Service)
3. An interactive prompt, whose answer can be saved to the keychain

Usage:
    from mbtf.credentials import CredentialType, get_credential_store

    store = get_credential_store()
    password = store.get(CredentialType.METABASE_PASSWORD, prompt_if_missing=True)
"""

from __future__ import annotations

import os
from enum import Enum

import keyring
from rich.console import Console

# Keychain service of every mbtf entry
SERVICE_NAME = "mbtf"


class CredentialType(str, Enum):
    """Credentials used to call the Metabase API."""

    METABASE_PASSWORD = "metabase-password"
    METABASE_API_KEY = "metabase-api-key"

    @property
    def env_var(self) -> str:
        """Environment variable overriding the keychain, e.g. MBTF_METABASE_PASSWORD."""
        return "MBTF_" + self.value.upper().replace("-", "_")

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    CredentialType.METABASE_PASSWORD: "Metabase Password",
    CredentialType.METABASE_API_KEY: "Metabase API Key",
}


class CredentialStore:
    """Looks credentials up in the environment, then the keychain.

    Keychain errors (no backend on a headless machine) are treated as a
    missing credential.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def get(
        self,
        credential: CredentialType,
        *,
        prompt_if_missing: bool = False,
        prompt_message: str | None = None,
    ) -> str | None:
        """Get a credential, prompting for it when asked to.

        Args:
            credential: Which credential to look up
            prompt_if_missing: Prompt when neither the environment nor the
                keychain has the credential
            prompt_message: Line shown above the prompt

        Returns:
            The credential, or None if it is missing (or the prompt was left
            empty)
        """
        value = os.environ.get(credential.env_var)
        if value:
            return value

        try:
            value = keyring.get_password(SERVICE_NAME, credential.value)
        except keyring.errors.KeyringError:
            value = None
        if value:
            return value

        if prompt_if_missing:
            return self._prompt(credential, prompt_message)
        return None

    def set(self, credential: CredentialType, value: str) -> bool:
        """Save a credential to the keychain.

        Returns:
            False if the keychain is unavailable
        """
        try:
            keyring.set_password(SERVICE_NAME, credential.value, value)
        except keyring.errors.KeyringError:
            return False
        return True

    def delete(self, credential: CredentialType) -> bool:
        """Remove a credential from the keychain.

        Returns:
            False if it was not stored, or the keychain is unavailable
        """
        try:
            keyring.delete_password(SERVICE_NAME, credential.value)
        except keyring.errors.KeyringError:
            # PasswordDeleteError (not stored) is a KeyringError too
            return False
        return True

    def exists(self, credential: CredentialType) -> bool:
        """Whether the environment or the keychain has the credential."""
        return self.get(credential) is not None

    def _prompt(
        self,
        credential: CredentialType,
        message: str | None,
    ) -> str | None:
        self.console.print()
        self.console.print(f"[bold]{credential.display_name} Required[/bold]")
        if message:
            self.console.print(message)
        self.console.print(f"[dim]Or set {credential.env_var}[/dim]")
        self.console.print()

        value = self.console.input(
            f"[bold]{credential.display_name}:[/bold] ", password=True
        )
        if not value:
            self.console.print("[yellow]Cancelled[/yellow]")
            return None

        answer = self.console.input("Save to system keychain for future use? [Y/n]: ")
        if answer.strip().lower() != "n":
            if self.set(credential, value):
                self.console.print(
                    f"[green]Saved to keychain ({SERVICE_NAME}/{credential.value})[/green]"
                )
            else:
                self.console.print(
                    "[yellow]Could not save to keychain (keychain unavailable)[/yellow]"
                )

        return value


_default_store: CredentialStore | None = None


def get_credential_store(console: Console | None = None) -> CredentialStore:
    """Get or create the default credential store."""
    global _default_store
    if _default_store is None:
        _default_store = CredentialStore(console)
    return _default_store


def get_metabase_password(
    username: str,
    *,
    prompt_if_missing: bool = False,
    console: Console | None = None,
) -> str | None:
    """Get the password of the Metabase user, optionally prompting for it."""
    return get_credential_store(console).get(
        CredentialType.METABASE_PASSWORD,
        prompt_if_missing=prompt_if_missing,
        prompt_message=f"Password for [bold]{username}[/bold]",
    )


def get_metabase_api_key(*, console: Console | None = None) -> str | None:
    """Get a stored Metabase API key.

    API keys are created by admins in Metabase (Settings > Admin > API keys),
    so they are never prompted for.
    """
    return get_credential_store(console).get(CredentialType.METABASE_API_KEY)
