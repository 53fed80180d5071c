"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class LinkRequest:
    """Proof that the caller controls the permanent account being linked to."""

    target_username: str
    target_secret: str


@dataclass(slots=True, frozen=True)
class RegistrationInput:
    """Validated inputs required to register a named account."""

    username: str
    display_name: str
    temporary: bool
    link: LinkRequest | None = None
    control_secret: str | None = None


@dataclass(slots=True, frozen=True)
class AccountChanges:
    """Owner-requested modifications to an existing account.

    ``secret`` carries an already generated replacement when the owner
    asked for rotation.
    """

    display_name: str | None = None
    new_username: str | None = None
    secret: str | None = None

    def renames(self, current_username: str) -> bool:
        return self.new_username is not None and self.new_username != current_username

    def attributes(self) -> dict[str, str]:
        """Return the non-key fields to write, skipping those left unset."""
        fields: dict[str, str] = {}
        if self.display_name is not None:
            fields["display_name"] = self.display_name
        if self.secret is not None:
            fields["secret"] = self.secret
        return fields


@dataclass(slots=True, frozen=True)
class UpdateInput:
    """Validated inputs for an owner-initiated update."""

    username: str
    secret: str
    display_name: str | None = None
    new_username: str | None = None
    rotate_secret: bool = False
