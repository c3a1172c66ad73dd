"""ERP JSON-RPC client.

The reconciliation core only needs one capability from the ERP: a
``search_read`` returning flat records. ``SearchRead`` is that contract;
``OdooClient`` implements it over Odoo's ``/jsonrpc`` endpoint.

Environment (optional):
  ERP_TIMEOUT=60   # seconds
  ERP_RETRIES=3

Notes:
- Every call is a single blocking POST; there is no pagination, the ERP is
  expected to return the complete batch for each query.
- Transport errors and JSON-RPC error payloads both surface as
  ``ExtractionError``.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Optional, Protocol, Sequence

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from pos_profit.config import ErpSession, http_settings
from pos_profit.exceptions import ExtractionError, SessionError

logger = logging.getLogger(__name__)

Domain = Sequence[Sequence[Any]]


class SearchRead(Protocol):
    """Anything able to answer an ERP ``search_read``."""

    def search_read(
        self,
        model: str,
        domain: Domain,
        fields: Sequence[str],
        *,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]: ...


def make_session(timeout: Optional[float] = None, retries: Optional[int] = None) -> requests.Session:
    """Create a requests Session with retry logic and default timeout.

    Configures the session with:
    - Retry adapter for HTTP/HTTPS with exponential backoff
    - Default timeout for all requests
    - Retries on 429, 500, 502, 503, 504 status codes

    Args:
        timeout: Default timeout in seconds. Defaults to ERP_TIMEOUT or 60.
        retries: Number of retry attempts. Defaults to ERP_RETRIES or 3.

    Returns:
        Configured requests.Session object.

    """
    env_timeout, env_retries = http_settings()
    timeout = env_timeout if timeout is None else timeout
    retries = env_retries if retries is None else retries

    s = requests.Session()
    s.headers.update({"Content-Type": "application/json"})
    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=0.8,  # 0.8, 1.6, 3.2, ...
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET", "POST"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    s.mount("http://", adapter)
    s.mount("https://", adapter)
    orig_request = s.request

    def timed_request(method: str, url: str, **kwargs: Any) -> requests.Response:
        kwargs.setdefault("timeout", timeout)
        return orig_request(method, url, **kwargs)

    s.request = timed_request  # type: ignore[method-assign,assignment]
    return s


def ensure_ok(resp: requests.Response, msg: str) -> None:
    """Raise ExtractionError unless the HTTP status is 2xx."""
    if not (200 <= resp.status_code < 300):
        raise ExtractionError(f"{msg}. HTTP {resp.status_code} - {resp.text[:400]}")


class OdooClient:
    """``search_read`` over Odoo JSON-RPC for one database and user.

    Example:
        >>> session = ErpSession.from_env()
        >>> client = OdooClient(session)
        >>> client.search_read("pos.config", [], ["name"], limit=5)
        [{'id': 1, 'name': 'FeetCare Recepcion'}, ...]

    """

    def __init__(self, session: ErpSession, http: Optional[requests.Session] = None) -> None:
        if not session.url or not session.db:
            raise SessionError("ERP session requires url and db")
        self.session = session
        self.http = http if http is not None else make_session()
        self._ids = itertools.count(1)

    @property
    def endpoint(self) -> str:
        return f"{self.session.url.rstrip('/')}/jsonrpc"

    def _call(self, service: str, method: str, args: list[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": "call",
            "params": {"service": service, "method": method, "args": args},
            "id": next(self._ids),
        }
        try:
            resp = self.http.post(self.endpoint, json=payload)
        except requests.RequestException as e:
            raise ExtractionError(f"ERP request failed ({service}.{method}): {e}") from e

        ensure_ok(resp, f"ERP {service}.{method} failed")
        try:
            body = resp.json()
        except ValueError as e:
            raise ExtractionError(f"ERP returned a non-JSON body: {resp.text[:200]}") from e

        if body.get("error"):
            err = body["error"]
            data = err.get("data") or {}
            detail = data.get("message") or err.get("message") or "unknown error"
            raise ExtractionError(f"ERP {service}.{method} error: {detail}")
        return body.get("result")

    def authenticate(self, login: str, password: str) -> int:
        """Resolve a login to the numeric uid used by ``execute_kw``.

        Raises:
            ExtractionError: If the ERP rejects the credentials.

        """
        uid = self._call("common", "authenticate", [self.session.db, login, password, {}])
        if not uid:
            raise ExtractionError(f"ERP rejected credentials for {login!r}")
        logger.info("Authenticated %s on %s (uid=%s)", login, self.session.db, uid)
        return int(uid)

    def search_read(
        self,
        model: str,
        domain: Domain,
        fields: Sequence[str],
        *,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        """Run ``model.search_read(domain, fields)`` and return the records."""
        if not self.session.is_valid:
            raise SessionError("ERP session has no uid/api key")

        kwargs: dict[str, Any] = {"fields": list(fields)}
        if order:
            kwargs["order"] = order
        if limit:
            kwargs["limit"] = limit
        if context:
            kwargs["context"] = context

        args = [
            self.session.db,
            self.session.uid,
            self.session.api_key,
            model,
            "search_read",
            [[list(term) if isinstance(term, tuple) else term for term in domain]],
            kwargs,
        ]
        result = self._call("object", "execute_kw", args)
        if not isinstance(result, list):
            raise ExtractionError(f"Unexpected search_read result for {model}: {type(result).__name__}")
        logger.debug("search_read %s -> %d record(s)", model, len(result))
        return result
