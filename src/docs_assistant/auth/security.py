"""
Admin Token Verification

The ingestion endpoints and cache control are reserved for the docs build
pipeline and operators. They present an HS256 JWT signed with `JWT_SECRET`:

    {"iss": "docs-build", "aud": "docs-assistant-server",
     "sub": "ci", "iat": ..., "exp": ..., "scope": ["embeddings"]}

The widget endpoints (`/api/docs-chat`, `POST /search/`) stay public.
"""

from __future__ import annotations

import jwt
from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..config import settings
from .models import ServiceContext


security = HTTPBearer(auto_error=True)


class AuthConfigError(RuntimeError):
    """Token verification is impossible because no secret is configured."""


def _decode_admin_token(token: str) -> dict:
    secret = settings.jwt_secret.get_secret_value()
    if not secret:
        raise AuthConfigError("JWT_SECRET is not configured.")

    return jwt.decode(
        token,
        secret,
        algorithms=[settings.jwt_algo],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
        options={"require": ["iss", "aud", "iat", "exp", "sub", "scope"]},
    )


def verify_admin_token(
    creds: HTTPAuthorizationCredentials = Depends(security),
) -> ServiceContext:
    """
    Verify the bearer token of an admin request.

    Returns
    -------
    ServiceContext

    Raises
    ------
    HTTPException
        401 for expired, foreign or malformed tokens; 500 when the server has
        no secret to verify with.
    """
    try:
        payload = _decode_admin_token(creds.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired.",
        )
    except jwt.InvalidAudienceError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token audience.",
        )
    except jwt.InvalidIssuerError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token issuer.",
        )
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or malformed token.",
        )
    except AuthConfigError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Admin token verification is not configured.",
        )

    scopes = payload["scope"]
    if not isinstance(scopes, list):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="'scope' claim must be a list.",
        )

    return ServiceContext(subject=payload["sub"], scopes=scopes)


def require_scopes(*required_scopes: str) -> Callable:
    """
    Dependency factory: verify the admin token and demand `required_scopes`.

    Example:
        @router.delete("/cache/{key}", dependencies=[Depends(require_scopes("search_cache"))])
    """

    def check_scopes(
        caller: ServiceContext = Depends(verify_admin_token),
    ) -> ServiceContext:
        missing = [s for s in required_scopes if s not in caller.scopes]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing required scope(s): {', '.join(missing)}",
            )
        return caller

    return check_scopes
