from __future__ import annotations

import hmac

from fastapi import Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param

from ..core.cache import TTLCache
from ..core.config import settings
from ..core.security import TokenPayload, decode_token
from ..middlewares import principal_ctx_var


class AuthContext:
    def __init__(self, *, subject: str, scheme: str, store_id: str | None = None) -> None:
        self.subject = subject
        self.scheme = scheme
        self.store_id = store_id


def _unauthorized(detail: str = "Unauthorized") -> None:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _set_principal(request: Request, principal: str) -> None:
    principal_ctx_var.set(principal)
    request.state.principal = principal


def get_auth_cache(request: Request) -> TTLCache:
    return request.app.state.auth_cache


def authenticate_bearer(token: str, cache: TTLCache) -> TokenPayload:
    """Decode an access token, reusing earlier decodes until it nears expiry."""

    key = ("access-token", token)
    cached = cache.get(key)
    if cached is not None:
        return cached
    payload = decode_token(token, verify_type="access")
    ttl = min(float(settings.AUTH_CACHE_TTL_SECONDS), payload.seconds_left())
    cache.set(key, payload, ttl=ttl)
    return payload


async def require_api_or_jwt(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> AuthContext:
    api_key = settings.API_KEY
    provided_key = (x_api_key or "").strip()
    if api_key and provided_key and hmac.compare_digest(api_key, provided_key):
        _set_principal(request, "api-key")
        return AuthContext(subject="api-key", scheme="api_key")

    if not api_key and not authorization:
        _set_principal(request, "anonymous")
        return AuthContext(subject="anonymous", scheme="open")

    if authorization:
        scheme, credentials = get_authorization_scheme_param(authorization)
        if scheme.lower() == "bearer" and credentials:
            try:
                payload = authenticate_bearer(credentials, get_auth_cache(request))
            except ValueError as exc:
                raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
            subject = f"jwt:{payload.sub}"
            _set_principal(request, subject)
            request.state.token_payload = payload
            return AuthContext(subject=subject, scheme="jwt", store_id=payload.store_id)

    if api_key and provided_key:
        _unauthorized("Invalid API key")
    _unauthorized("Authorization required")
