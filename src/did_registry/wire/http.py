"""HTTP binding for the DID Registry.

This module provides:

* **create_http_handler** -- factory that creates an async request handler
  suitable for use in ASGI applications or test harnesses.
* **RegistryClient** -- async HTTP client for wallets and off-chain
  services (requires the optional ``httpx`` dependency).

Routes
------
=======  ==================================  =============================
Method   Path                                Operation
=======  ==================================  =============================
POST     ``/v1/identities/register``         register
POST     ``/v1/identities/update``           update
POST     ``/v1/identities/revoke``           revoke
GET      ``/v1/identities/{key}``            full record (revoked included)
GET      ``/v1/identities/{key}/nonce``      current nonce
GET      ``/v1/stats``                       total identity count
=======  ==================================  =============================

The ``httpx`` dependency is optional.  If it is not installed,
:class:`RegistryClient` raises :exc:`ImportError` on instantiation while
the handler factory remains fully functional.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Callable, Coroutine
from datetime import datetime
from typing import TYPE_CHECKING, Any

from did_registry.core.errors import (
    MalformedMessage,
    NotFound,
    RegistryError,
    RouteNotFound,
    error_from_code,
)
from did_registry.core.types import IdentityKey, RegistrationRecord, optional_text
from did_registry.wire.messages import (
    API_PREFIX,
    CONTENT_TYPE,
    RegisterRequest,
    RevokeRequest,
    UpdateRequest,
    format_error,
    parse_request,
    serialize,
    validate_content_type,
)

# Optional httpx import -- only the client needs it.
try:
    import httpx

    _HTTPX_AVAILABLE = True
except ImportError:  # pragma: no cover
    _HTTPX_AVAILABLE = False

if TYPE_CHECKING:
    from did_registry.identity.ledger import IdentityLedger

logger = logging.getLogger(__name__)

_IDENTITY_PATH_RE = re.compile(
    rf"^{API_PREFIX}/identities/(?P<key>[0-9]{{1,80}})(?P<nonce>/nonce)?$"
)

# Type alias for an async handler function.
HTTPHandler = Callable[
    [str, str, dict[str, str], bytes],
    Coroutine[Any, Any, tuple[int, dict[str, str], str]],
]


def _parse_key(raw: str) -> IdentityKey:
    return IdentityKey(int(raw))


# ---------------------------------------------------------------------------
# HTTP Handler Factory (server-side)
# ---------------------------------------------------------------------------

def create_http_handler(ledger: IdentityLedger) -> HTTPHandler:
    """Create an async HTTP request handler for an :class:`IdentityLedger`.

    The returned handler accepts ``(method, path, headers, body)`` and
    returns ``(status_code, response_headers, response_body)``.  Registry
    errors map to their ``http_status`` with a JSON error body.
    """

    async def _register(body: bytes) -> dict[str, Any]:
        request = parse_request(body, RegisterRequest)
        record = await ledger.register(
            request.identity_key,
            request.username,
            optional_text(request.kyc_hash),
            request.nonce,
            request.signature_bytes,
        )
        return record.to_wire()

    async def _update(body: bytes) -> dict[str, Any]:
        request = parse_request(body, UpdateRequest)
        record = await ledger.update(
            request.identity_key,
            optional_text(request.new_username),
            optional_text(request.new_kyc_hash),
            request.nonce,
            request.signature_bytes,
        )
        return record.to_wire()

    async def _revoke(body: bytes) -> dict[str, Any]:
        request = parse_request(body, RevokeRequest)
        record = await ledger.revoke(
            request.identity_key,
            request.nonce,
            request.signature_bytes,
        )
        return record.to_wire()

    mutations = {
        f"{API_PREFIX}/identities/register": _register,
        f"{API_PREFIX}/identities/update": _update,
        f"{API_PREFIX}/identities/revoke": _revoke,
    }

    async def _query(path: str) -> dict[str, Any]:
        if path == f"{API_PREFIX}/stats":
            return {
                "registry_id": ledger.config.registry_id,
                "total_identities": await ledger.total_identities(),
            }
        match = _IDENTITY_PATH_RE.match(path)
        if match is None:
            raise RouteNotFound(f"No route for GET {path}", details={"path": path})
        key = _parse_key(match.group("key"))
        if match.group("nonce"):
            return {"identity_key": str(key), "nonce": await ledger.get_nonce(key)}
        record = await ledger.get_record(key)
        if record is None:
            raise NotFound(
                f"No record for identity key: {key}",
                details={"identity_key": str(key)},
            )
        return record.to_wire()

    async def handler(
        method: str,
        path: str,
        headers: dict[str, str],
        body: bytes,
    ) -> tuple[int, dict[str, str], str]:
        """Process one HTTP request against the ledger."""
        response_headers: dict[str, str] = {"Content-Type": CONTENT_TYPE}
        path = path.rstrip("/") or "/"
        method = method.upper()

        try:
            if method == "POST":
                route = mutations.get(path)
                if route is None:
                    raise RouteNotFound(f"No route for POST {path}", details={"path": path})
                content_type = headers.get("content-type", headers.get("Content-Type", ""))
                if content_type:
                    validate_content_type(content_type)
                return (200, response_headers, serialize(await route(body)))

            if method == "GET":
                return (200, response_headers, serialize(await _query(path)))

            raise RouteNotFound(
                f"Method not supported: {method}",
                details={"method": method, "path": path},
            )

        except RegistryError as exc:
            return (exc.http_status, response_headers, format_error(exc))

        except Exception as exc:
            logger.exception("unhandled error serving %s %s", method, path)
            fallback = RegistryError(
                f"Internal server error: {type(exc).__name__}",
                details={"exception_type": type(exc).__name__},
            )
            return (500, response_headers, format_error(fallback))

    return handler


# ---------------------------------------------------------------------------
# RegistryClient
# ---------------------------------------------------------------------------

class RegistryClient:
    """Async HTTP client for a remote registry.

    Parameters
    ----------
    base_url:
        Base URL of the registry service (e.g. ``https://registry.example``).
    timeout:
        Request timeout in seconds (default: 30).
    transport:
        Optional ``httpx`` transport, e.g. ``httpx.MockTransport`` in tests.

    Raises
    ------
    ImportError
        If ``httpx`` is not installed.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: Any = None,
    ) -> None:
        if not _HTTPX_AVAILABLE:
            msg = (
                "httpx is required for RegistryClient. "
                "Install it with: pip install did-registry[http]"
            )
            raise ImportError(msg)

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def _send(self, method: str, path: str, content: str | None = None) -> dict[str, Any]:
        url = f"{self._base_url}{API_PREFIX}{path}"
        headers = {"Accept": CONTENT_TYPE}
        if content is not None:
            headers["Content-Type"] = CONTENT_TYPE

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.request(method, url, content=content, headers=headers)

        try:
            data: dict[str, Any] = response.json()
        except ValueError as exc:
            raise MalformedMessage(
                f"Invalid JSON in HTTP response: {exc}",
                details={"status_code": response.status_code},
            ) from exc

        if response.is_error:
            raise _error_from_body(data, response.status_code)
        return data

    async def register(self, request: RegisterRequest) -> RegistrationRecord:
        """Submit a signed register request and return the new record."""
        data = await self._send("POST", "/identities/register", request.to_json())
        return _record_from_wire(data)

    async def update(self, request: UpdateRequest) -> RegistrationRecord:
        """Submit a signed update request and return the updated record."""
        data = await self._send("POST", "/identities/update", request.to_json())
        return _record_from_wire(data)

    async def revoke(self, request: RevokeRequest) -> RegistrationRecord:
        """Submit a signed revoke request and return the revoked record."""
        data = await self._send("POST", "/identities/revoke", request.to_json())
        return _record_from_wire(data)

    async def get_record(self, key: IdentityKey) -> RegistrationRecord | None:
        """Return the record for *key*, or ``None`` if never registered."""
        try:
            data = await self._send("GET", f"/identities/{int(key)}")
        except NotFound:
            return None
        return _record_from_wire(data)

    async def get_nonce(self, key: IdentityKey) -> int:
        """Return the current nonce for *key* (``0`` if unregistered)."""
        data = await self._send("GET", f"/identities/{int(key)}/nonce")
        return int(data["nonce"])

    async def next_nonce(self, key: IdentityKey) -> int:
        """Return the nonce the next request for *key* must carry."""
        return await self.get_nonce(key) + 1

    async def total_identities(self) -> int:
        """Return the number of identities ever registered."""
        data = await self._send("GET", "/stats")
        return int(data["total_identities"])


def _error_from_body(data: dict[str, Any], status_code: int) -> RegistryError:
    payload = data.get("error", {}) if isinstance(data, dict) else {}
    code = payload.get("code", "")
    message = payload.get("message")
    try:
        error = error_from_code(code, message)
    except KeyError:
        error = RegistryError(message or f"HTTP {status_code}")
    error.details = payload.get("detail", {})
    return error


def _record_from_wire(data: dict[str, Any]) -> RegistrationRecord:
    try:
        return RegistrationRecord(
            owner=IdentityKey(int(data["owner"])),
            username=data["username"],
            kyc_hash=optional_text(data.get("kyc_hash")),
            is_active=data["is_active"],
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            nonce=int(data["nonce"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedMessage(f"Invalid record in response: {exc}") from exc
