import os
import time

import jwt
import pytest

# Settings are read at import time
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("JWT_SECRET", "test-secret-docs-build-must-be-long-enough")


@pytest.fixture
def make_token():
    """Factory for admin tokens signed like the docs build signs them."""
    from docs_assistant.config import settings

    def _make(
        scopes=("embeddings", "search_cache"),
        issuer=None,
        audience=None,
        expired=False,
        secret=None,
    ):
        now = int(time.time())
        iat = now - 3600 if expired else now
        payload = {
            "iss": issuer or settings.jwt_issuer,
            "aud": audience or settings.jwt_audience,
            "sub": "docs-build",
            "iat": iat,
            "exp": iat + 60 if not expired else iat - 10,
            "scope": list(scopes),
        }
        return jwt.encode(
            payload,
            secret or settings.jwt_secret.get_secret_value(),
            algorithm="HS256",
        )

    return _make


@pytest.fixture
def admin_headers(make_token):
    return {"Authorization": f"Bearer {make_token()}"}
