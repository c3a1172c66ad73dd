"""ERP connection configuration for the profitability core.

This module provides the single configuration object shared by the
extraction layer and the report orchestrator.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from pos_profit.exceptions import ConfigError

# HTTP resiliency defaults, overridable via ERP_TIMEOUT / ERP_RETRIES
DEFAULT_TIMEOUT = 60.0
DEFAULT_RETRIES = 3


def _clean(value: Optional[str]) -> str:
    """Strip whitespace and surrounding quotes from an environment value."""
    if value is None:
        return ""
    return value.strip().strip('"').strip("'")


@dataclass(frozen=True)
class ErpSession:
    """Credentials and company scoping for one ERP database.

    Attributes:
        url: Base URL of the ERP server (e.g. ``https://erp.example.com``).
        db: Database name.
        uid: Numeric user id returned by the ERP login.
        api_key: API key (or password) used for every RPC call.
        company_id: Optional company id; scopes orders and product costs.
        company_name: Display name copied onto every reconciled sale.
    """

    url: str
    db: str
    uid: int
    api_key: str
    company_id: Optional[int] = None
    company_name: str = ""

    @property
    def is_valid(self) -> bool:
        """True when every field needed to issue a call is present."""
        return bool(self.url and self.db and self.uid and self.api_key)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> ErpSession:
        """Create an ErpSession from ``ERP_*`` environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            ErpSession instance.

        Raises:
            ConfigError: If ERP_URL, ERP_DB, ERP_UID or ERP_API_KEY is missing,
                or if ERP_UID / ERP_COMPANY_ID are not integers.

        Examples:
            >>> session = ErpSession.from_env({
            ...     "ERP_URL": "https://erp.example.com",
            ...     "ERP_DB": "prod",
            ...     "ERP_UID": "7",
            ...     "ERP_API_KEY": "secret",
            ... })
            >>> session.uid
            7
        """
        env = os.environ if environ is None else environ

        required = ("ERP_URL", "ERP_DB", "ERP_UID", "ERP_API_KEY")
        missing = [name for name in required if not _clean(env.get(name))]
        if missing:
            raise ConfigError(f"Missing ERP settings: {', '.join(missing)}")

        try:
            uid = int(_clean(env.get("ERP_UID")))
            company_raw = _clean(env.get("ERP_COMPANY_ID"))
            company_id = int(company_raw) if company_raw else None
        except ValueError as e:
            raise ConfigError(f"ERP_UID and ERP_COMPANY_ID must be integers: {e}") from e

        return cls(
            url=_clean(env.get("ERP_URL")).rstrip("/"),
            db=_clean(env.get("ERP_DB")),
            uid=uid,
            api_key=_clean(env.get("ERP_API_KEY")),
            company_id=company_id,
            company_name=_clean(env.get("ERP_COMPANY_NAME")),
        )


def http_settings(environ: Optional[Mapping[str, str]] = None) -> tuple[float, int]:
    """Return ``(timeout_seconds, retries)`` from ERP_TIMEOUT / ERP_RETRIES."""
    env = os.environ if environ is None else environ
    try:
        timeout = float(_clean(env.get("ERP_TIMEOUT")) or DEFAULT_TIMEOUT)
        retries = int(_clean(env.get("ERP_RETRIES")) or DEFAULT_RETRIES)
    except ValueError as e:
        raise ConfigError(f"Invalid ERP_TIMEOUT/ERP_RETRIES: {e}") from e
    return timeout, retries
