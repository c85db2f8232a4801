"""OIDC token validation and RBAC helpers."""
from __future__ import annotations

import asyncio
from typing import Sequence

import httpx
from authlib.jose import JsonWebKey, jwt
from authlib.jose.errors import JoseError
from fastapi import HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import PolicyCloneSettings, get_settings


class OIDCVerifier:
    """Validate JWT tokens using JWKS discovery."""

    def __init__(self, settings: PolicyCloneSettings) -> None:
        self._settings = settings
        self._jwks: JsonWebKey | None = None
        self._lock = asyncio.Lock()

    async def _get_jwks(self) -> JsonWebKey:
        async with self._lock:
            if self._jwks is not None:
                return self._jwks
            issuer = self._settings.security.oidc_issuer_url
            if not issuer:
                raise RuntimeError("OIDC issuer URL is not configured")
            jwks_url = issuer.rstrip("/") + "/.well-known/jwks.json"
            async with httpx.AsyncClient() as client:
                response = await client.get(jwks_url, timeout=10)
                response.raise_for_status()
            data = response.json()
            self._jwks = JsonWebKey.import_key_set(data)
            return self._jwks

    async def verify(self, credentials: HTTPAuthorizationCredentials | None, required_roles: Sequence[str]) -> dict:
        if not self._settings.security.oidc_issuer_url:
            # RBAC disabled in environment; allow request to proceed with placeholder claims
            return {"sub": "anonymous", "roles": [self._settings.security.admin_role]}
        if credentials is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

        jwks = await self._get_jwks()
        try:
            claims = jwt.decode(credentials.credentials, jwks)
            claims.validate()
        except JoseError as exc:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

        issuer = self._settings.security.oidc_issuer_url
        audience = self._settings.security.oidc_audience
        if issuer and claims.get("iss") != issuer:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid issuer")
        token_audience = claims.get("aud")
        audiences = set(token_audience) if isinstance(token_audience, list) else {token_audience}
        if audience and audience not in audiences:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid audience")

        if required_roles:
            roles = claims.get(self._settings.security.role_claim, [])
            if isinstance(roles, str):
                roles = [roles]
            if not set(required_roles).intersection(roles):
                raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return dict(claims)


_oidc_singleton: OIDCVerifier | None = None


def get_oidc_verifier() -> OIDCVerifier:
    global _oidc_singleton
    if _oidc_singleton is None:
        _oidc_singleton = OIDCVerifier(get_settings())
    return _oidc_singleton


def require_roles(*roles: str):
    async def dependency(credentials: HTTPAuthorizationCredentials | None = Security(HTTPBearer(auto_error=False))):
        verifier = get_oidc_verifier()
        return await verifier.verify(credentials, roles)

    return dependency


def require_admin():
    return require_roles(get_settings().security.admin_role)


__all__ = ["require_roles", "require_admin", "get_oidc_verifier", "OIDCVerifier"]
