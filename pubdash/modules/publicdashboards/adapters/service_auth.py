from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time

from pubdash.modules.publicdashboards.domain.models import AnonymousExecutionContext


def _b64url_encode(value: bytes) -> str:
    return base64.urlsafe_b64encode(value).decode("ascii").rstrip("=")


def mint_execution_token(
    *,
    secret: str,
    context: AnonymousExecutionContext,
    subject: str = "pubdash-anonymous",
    ttl_seconds: int = 120,
) -> str:
    """HS256-sign the anonymous permission set for the query backend.

    The backend authorizes each query against ``permissions`` and nothing else,
    so the token is the whole identity of a public viewer.
    """
    now = int(time.time())
    header = {"alg": "HS256", "typ": "JWT"}
    payload = {
        "iss": "pubdash",
        "aud": "query-service",
        "sub": subject,
        "iat": now,
        "exp": now + ttl_seconds,
        "org_id": context.org_id,
        "permissions": {action: sorted(scopes) for action, scopes in context.permissions.items()},
    }
    header_b64 = _b64url_encode(json.dumps(header, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    payload_b64 = _b64url_encode(json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    sig = hmac.new(secret.encode("utf-8"), signing_input, hashlib.sha256).digest()
    return f"{header_b64}.{payload_b64}.{_b64url_encode(sig)}"
