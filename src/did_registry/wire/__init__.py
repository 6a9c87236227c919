"""DID Registry wire subpackage -- JSON request models and the HTTP binding.

This subpackage provides:

* **Message models** -- signed request bodies, serialisation and
  validation helpers (:mod:`~did_registry.wire.messages`).
* **HTTP transport** -- server-side handler factory and async client
  (:mod:`~did_registry.wire.http`).
"""
from __future__ import annotations

# -- HTTP transport ---------------------------------------------------------
from did_registry.wire.http import RegistryClient, create_http_handler

# -- Messages ---------------------------------------------------------------
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

__all__ = [
    # Messages
    "API_PREFIX",
    "CONTENT_TYPE",
    "RegisterRequest",
    "UpdateRequest",
    "RevokeRequest",
    "format_error",
    "parse_request",
    "serialize",
    "validate_content_type",
    # HTTP
    "RegistryClient",
    "create_http_handler",
]
