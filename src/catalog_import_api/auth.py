"""
Operator authentication for the import endpoints.

Operators authenticate with an X-API-Key from API_KEYS (optionally
"key:operator_id") or with an RS256 Bearer token from the identity provider
at AUTH_JWKS_URL. The resolved operator id owns the import jobs it creates.
"""
import logging
from typing import Dict, Optional

import jwt
from fastapi import HTTPException, Header

from catalog_import_api.config import settings

logger = logging.getLogger(__name__)

# API keys without an operator suffix act as this shared account
SHARED_OPERATOR_ID = "admin"

_jwks_clients: Dict[str, jwt.PyJWKClient] = {}


def get_jwks_client() -> Optional[jwt.PyJWKClient]:
    """Get or create the JWKS client for the configured identity provider."""
    url = settings.AUTH_JWKS_URL
    if not url:
        return None
    if url not in _jwks_clients:
        _jwks_clients[url] = jwt.PyJWKClient(url)
    return _jwks_clients[url]


async def get_current_user(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key")
) -> str:
    """
    Resolve the operator making the request.

    Usage:
        @router.post("/jobs")
        async def create_import_job(user_id: str = Depends(get_current_user)):
            ...
    """
    if x_api_key:
        return operator_from_api_key(x_api_key)

    if authorization:
        return operator_from_bearer(authorization)

    raise HTTPException(
        status_code=401,
        detail="Missing authentication. Provide Authorization header or X-API-Key."
    )


def operator_from_api_key(api_key: str) -> str:
    """
    Check an API key and return the operator id.

    - "sk_test_abc123" -> "admin"
    - "sk_test_abc123:operator_1" -> "operator_1"
    """
    if not settings.API_KEYS:
        logger.warning("No API keys configured (API_KEYS env var empty)")
        raise HTTPException(status_code=401, detail="API key authentication not configured")

    key, _, operator_id = api_key.partition(":")
    if key not in settings.API_KEYS:
        raise HTTPException(status_code=401, detail="Invalid API key")

    return operator_id.strip() or SHARED_OPERATOR_ID


def operator_from_bearer(authorization: str) -> str:
    """Validate a Bearer token against the JWKS and return its subject."""
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    token = authorization.split(" ", 1)[1]
    jwks_client = get_jwks_client()

    if not jwks_client:
        raise HTTPException(
            status_code=500,
            detail="JWT validation not configured (missing AUTH_JWKS_URL)"
        )

    try:
        signing_key = jwks_client.get_signing_key_from_jwt(token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.AUTH_AUDIENCE or None,
            options={"verify_aud": bool(settings.AUTH_AUDIENCE)}
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.PyJWKClientError as e:
        logger.warning(f"Signing key lookup failed: {e}")
        raise HTTPException(status_code=401, detail="Could not verify token signing key")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {str(e)}")

    operator_id = payload.get("sub")
    if not operator_id:
        raise HTTPException(status_code=401, detail="Token missing user ID")
    return operator_id
