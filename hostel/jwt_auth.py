"""
PocketBase token validation for the hostel API.
"""

from __future__ import annotations

import hashlib
import logging
import time
from typing import Any

import httpx
import jwt
from jwt.exceptions import DecodeError

logger = logging.getLogger(__name__)

SUPERUSERS_COLLECTION = "_superusers"
SUPERUSERS_COLLECTION_ID = "pbc_3142635823"


def peek_claims(token: str) -> dict[str, Any]:
    """Decode JWT claims WITHOUT verifying the signature. For routing decisions only."""
    try:
        claims: dict[str, Any] = jwt.decode(token, options={"verify_signature": False})
        return claims
    except DecodeError:
        return {}


class PocketBaseTokenValidator:
    """Validates PocketBase user tokens by asking PocketBase to refresh them."""

    def __init__(self, pocketbase_url: str, collection: str = "users", cache_ttl: float = 60.0):
        self.pocketbase_url = pocketbase_url.rstrip("/")
        self.collection = collection
        self._cache_ttl = cache_ttl
        self._validation_cache: dict[str, tuple[dict[str, Any], float]] = {}  # token_hash -> (claims, expiry)

    @staticmethod
    def _cache_key(token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()[:32]

    def validate_token(self, token: str) -> dict[str, Any] | None:
        """Return the user's claims if PocketBase accepts the token, else None."""
        unverified = peek_claims(token)
        collection_id = str(unverified.get("collectionId", ""))
        if collection_id in (SUPERUSERS_COLLECTION, SUPERUSERS_COLLECTION_ID):
            logger.warning("SECURITY: Rejecting _superusers token. Admin tokens cannot be used for API access.")
            return None

        exp = unverified.get("exp")
        if isinstance(exp, int | float) and exp < time.time():
            logger.debug("Token already expired, skipping PocketBase round trip")
            return None

        cache_key = self._cache_key(token)
        cached = self._validation_cache.get(cache_key)
        if cached is not None:
            claims, expiry = cached
            if time.time() < expiry:
                return claims
            del self._validation_cache[cache_key]

        try:
            response = httpx.post(
                f"{self.pocketbase_url}/api/collections/{self.collection}/auth-refresh",
                headers={"Authorization": f"Bearer {token}"},
                timeout=5.0,
            )
        except httpx.TimeoutException:
            logger.warning("PocketBase token validation timed out")
            return None
        except httpx.HTTPError as e:
            logger.error(f"Error validating PocketBase token: {type(e).__name__}: {e}")
            return None

        if response.status_code != 200:
            logger.debug(f"PocketBase auth-refresh returned status {response.status_code}")
            return None

        record = response.json().get("record", {})
        if record.get("collectionName") == SUPERUSERS_COLLECTION:
            logger.warning("SECURITY: auth-refresh returned a _superusers record, rejecting")
            return None

        claims = {
            "sub": record.get("id", ""),
            "email": record.get("email", ""),
            "name": record.get("name") or record.get("display_name") or "",
            "email_verified": record.get("verified", False),
        }
        self._validation_cache[cache_key] = (claims, time.time() + self._cache_ttl)
        logger.debug(f"PocketBase token validated for user {claims['sub']}")
        return claims

    def clear_cache(self) -> None:
        self._validation_cache.clear()


def extract_bearer_token(authorization_header: str | None) -> str | None:
    """Extract bearer token from Authorization header."""
    if not authorization_header:
        return None

    parts = authorization_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]
