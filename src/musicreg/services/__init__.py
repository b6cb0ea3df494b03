"""Application services - Period resolution, conflicts, registrations and auth."""

from musicreg.services.auth import AccessCodeVerifier, Actor, Authenticator, CredentialVerifier
from musicreg.services.conflicts import BUS_DEADLINES, Conflict, ConflictChecker, ConflictKind
from musicreg.services.period import PeriodService
from musicreg.services.registration import (
    DEFAULT_ROOM_ID,
    CancellationResult,
    RegistrationApplicationService,
    RegistrationResult,
    ValidationReport,
)

__all__ = [
    "BUS_DEADLINES",
    "DEFAULT_ROOM_ID",
    "AccessCodeVerifier",
    "Actor",
    "Authenticator",
    "CancellationResult",
    "Conflict",
    "ConflictChecker",
    "ConflictKind",
    "CredentialVerifier",
    "PeriodService",
    "RegistrationApplicationService",
    "RegistrationResult",
    "ValidationReport",
]
