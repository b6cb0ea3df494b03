"""Runtime settings loaded from MUSICREG_* environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

STORE_BACKENDS = ("sql", "sheets")


def _split_csv(value: str | None) -> frozenset[str]:
    if not value:
        return frozenset()
    return frozenset(part.strip() for part in value.split(",") if part.strip())


@dataclass
class Settings:
    """Application settings.

    Attributes:
        environment: Deployment environment name ("development", "production", ...).
        store_backend: Which tabular store to use, "sql" or "sheets".
        db_path: SQLite path for the sql backend.
        spreadsheet_id: Google spreadsheet ID for the sheets backend.
        service_account_file: Path to a service-account JSON key file.
        service_account_json: Inline service-account JSON key.
        cache_ttl_seconds: Read cache lifetime for the sheets backend.
        waitlist_class_ids: Classes whose registrations may omit a length.
        cancellation_fee: Flat fee charged for late (under 7 days) cancellations.
    """

    environment: str = "production"
    store_backend: str = "sql"
    db_path: str = "musicreg.db"
    spreadsheet_id: str | None = None
    service_account_file: str | None = None
    service_account_json: str | None = None
    cache_ttl_seconds: int = 300
    waitlist_class_ids: frozenset[str] = field(default_factory=frozenset)
    cancellation_fee: Decimal = Decimal("25.00")

    @property
    def is_development(self) -> bool:
        """Whether internal error details may be exposed to clients."""
        return self.environment.lower() in ("development", "dev", "local")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (for tests).

        Returns:
            Populated Settings. Unparseable numbers raise ValueError.
        """
        env = os.environ if environ is None else environ

        ttl_raw = env.get("MUSICREG_CACHE_TTL_SECONDS", "300")
        try:
            cache_ttl = int(ttl_raw)
        except ValueError as e:
            raise ValueError(
                f"MUSICREG_CACHE_TTL_SECONDS must be an integer, got {ttl_raw!r}"
            ) from e

        fee_raw = env.get("MUSICREG_CANCELLATION_FEE", "25.00")
        try:
            fee = Decimal(fee_raw)
        except InvalidOperation as e:
            raise ValueError(f"MUSICREG_CANCELLATION_FEE must be a number, got {fee_raw!r}") from e

        return cls(
            environment=env.get("MUSICREG_ENV", "production"),
            store_backend=env.get("MUSICREG_STORE", "sql").lower(),
            db_path=env.get("MUSICREG_DB_PATH", "musicreg.db"),
            spreadsheet_id=env.get("MUSICREG_SPREADSHEET_ID") or None,
            service_account_file=env.get("MUSICREG_SERVICE_ACCOUNT_FILE") or None,
            service_account_json=env.get("MUSICREG_SERVICE_ACCOUNT_JSON") or None,
            cache_ttl_seconds=cache_ttl,
            waitlist_class_ids=_split_csv(env.get("MUSICREG_WAITLIST_CLASS_IDS")),
            cancellation_fee=fee,
        )

    def validate(self) -> None:
        """Check settings for consistency.

        Raises:
            ValueError: Listing every problem found.
        """
        problems: list[str] = []
        if self.store_backend not in STORE_BACKENDS:
            problems.append(
                f"MUSICREG_STORE must be one of {', '.join(STORE_BACKENDS)}, "
                f"got {self.store_backend!r}"
            )
        if self.store_backend == "sheets":
            if not self.spreadsheet_id:
                problems.append("MUSICREG_SPREADSHEET_ID is required for the sheets store")
            if not (self.service_account_file or self.service_account_json):
                problems.append(
                    "MUSICREG_SERVICE_ACCOUNT_FILE or MUSICREG_SERVICE_ACCOUNT_JSON "
                    "is required for the sheets store"
                )
        if self.cache_ttl_seconds < 0:
            problems.append("MUSICREG_CACHE_TTL_SECONDS must not be negative")
        if self.cancellation_fee < 0:
            problems.append("MUSICREG_CANCELLATION_FEE must not be negative")
        if problems:
            raise ValueError("Invalid configuration: " + "; ".join(problems))
