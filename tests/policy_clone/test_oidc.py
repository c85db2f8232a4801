import time

import pytest
from authlib.jose import JsonWebKey, jwt
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from services.policy_clone.app.auth.oidc import OIDCVerifier
from services.policy_clone.app.config import PolicyCloneSettings

ISSUER = "https://login.example.test"
AUDIENCE = "policy-clone"


@pytest.fixture
def signing_key():
    return JsonWebKey.generate_key("oct", 256, {"kid": "test-key"}, is_private=True)


@pytest.fixture
def verifier(monkeypatch, signing_key):
    settings = PolicyCloneSettings(security={"oidc_issuer_url": ISSUER, "oidc_audience": AUDIENCE})
    verifier = OIDCVerifier(settings)
    key_set = JsonWebKey.import_key_set({"keys": [signing_key.as_dict(is_private=True)]})

    async def _jwks():
        return key_set

    monkeypatch.setattr(verifier, "_get_jwks", _jwks)
    return verifier


def _bearer(signing_key, **overrides) -> HTTPAuthorizationCredentials:
    claims = {
        "sub": "admin@example.test",
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": int(time.time()) + 300,
        "roles": ["ADM"],
        **overrides,
    }
    token = jwt.encode({"alg": "HS256", "kid": "test-key"}, claims, signing_key)
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token.decode("utf-8"))


@pytest.mark.asyncio
async def test_admin_token_is_accepted(verifier, signing_key):
    claims = await verifier.verify(_bearer(signing_key), ["ADM"])

    assert claims["sub"] == "admin@example.test"


@pytest.mark.asyncio
async def test_single_role_string_is_accepted(verifier, signing_key):
    claims = await verifier.verify(_bearer(signing_key, roles="ADM"), ["ADM"])

    assert claims["roles"] == "ADM"


@pytest.mark.asyncio
async def test_missing_role_is_forbidden(verifier, signing_key):
    with pytest.raises(HTTPException) as excinfo:
        await verifier.verify(_bearer(signing_key, roles=["VIEWER"]), ["ADM"])

    assert excinfo.value.status_code == 403


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, detail",
    [
        ({"aud": "another-service"}, "Invalid audience"),
        ({"iss": "https://elsewhere.example.test"}, "Invalid issuer"),
    ],
)
async def test_foreign_tokens_are_rejected(verifier, signing_key, overrides, detail):
    with pytest.raises(HTTPException) as excinfo:
        await verifier.verify(_bearer(signing_key, **overrides), ["ADM"])

    assert excinfo.value.status_code == 401
    assert excinfo.value.detail == detail


@pytest.mark.asyncio
async def test_malformed_token_is_rejected(verifier):
    credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="not-a-jwt")

    with pytest.raises(HTTPException) as excinfo:
        await verifier.verify(credentials, ["ADM"])

    assert excinfo.value.detail == "Invalid token"


@pytest.mark.asyncio
async def test_missing_bearer_token_is_rejected(verifier):
    with pytest.raises(HTTPException) as excinfo:
        await verifier.verify(None, ["ADM"])

    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_unconfigured_issuer_grants_placeholder_admin():
    verifier = OIDCVerifier(PolicyCloneSettings())

    claims = await verifier.verify(None, ["ADM"])

    assert claims == {"sub": "anonymous", "roles": ["ADM"]}
