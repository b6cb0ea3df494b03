"""Credential verification, kept apart from the actor identity used for audit."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from musicreg.domain.exceptions import ForbiddenError, UnauthorizedError
from musicreg.repositories.users import UserType

if TYPE_CHECKING:
    from musicreg.repositories.users import UserRepository

logger = logging.getLogger("musicreg.services.auth")


@dataclass(frozen=True)
class Actor:
    """An authenticated caller.

    Attributes:
        actor_id: Opaque identity written to audit fields (the user's email).
        user_type: Role of the caller.
        user_id: Row ID of the user record.
        display_name: Name for display.
    """

    actor_id: str
    user_type: UserType
    user_id: str = ""
    display_name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.user_type == UserType.ADMIN


class CredentialVerifier(Protocol):
    """Interface for turning a presented credential into an actor."""

    def verify(self, credential: str) -> Actor | None:
        """Return the actor for a valid credential, None otherwise."""
        ...


class AccessCodeVerifier:
    """Verifies staff access codes and parent phone numbers."""

    def __init__(self, users: UserRepository) -> None:
        self._users = users

    def verify(self, credential: str) -> Actor | None:
        match = self._users.get_user_by_access_code(credential)
        if match is None:
            return None
        user = match.user
        return Actor(
            actor_id=user.email or user.id,
            user_type=match.user_type,
            user_id=user.id,
            display_name=user.display_name,
        )


class Authenticator:
    """Authenticates callers and checks their role."""

    def __init__(self, verifier: CredentialVerifier) -> None:
        self._verifier = verifier

    def authenticate(self, credential: str | None) -> Actor:
        """Resolve a credential to an actor.

        Raises:
            UnauthorizedError: If the credential is missing or unknown
        """
        if not credential or not credential.strip():
            raise UnauthorizedError("Authentication required")
        actor = self._verifier.verify(credential.strip())
        if actor is None:
            logger.warning("Rejected unknown credential")
            raise UnauthorizedError("Invalid access code", code="INVALID_ACCESS_CODE")
        logger.debug("Authenticated %s as %s", actor.actor_id, actor.user_type)
        return actor

    @staticmethod
    def require_role(actor: Actor, *roles: UserType) -> Actor:
        """Ensure the actor has one of the given roles.

        Raises:
            ForbiddenError: If the actor's role is not allowed
        """
        if actor.user_type not in roles:
            raise ForbiddenError(
                f"This action requires one of: {', '.join(r.value for r in roles)}"
            )
        return actor
