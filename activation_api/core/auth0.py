"""
Auth0 RS256 bearer token verification.

Signing keys come from the tenant's JWKS endpoint and are cached per
verifier; an unknown ``kid`` forces one refresh to follow key rotation.
"""

import logging
import time
from typing import Any, Dict, Optional

import httpx
from jose import JWTError, jwt

from activation_api.config import get_settings

logger = logging.getLogger(__name__)

JWKS_CACHE_TTL = 6 * 60 * 60  # 6 hours
EMAIL_CLAIMS = ("email", "https://activation.crm/email")


class TokenVerificationError(ValueError):
    pass


class Auth0Verifier:
    def __init__(self, domain: str, audience: str, timeout: float = 10.0) -> None:
        self.domain = domain
        self.audience = audience
        self.timeout = timeout
        self._jwks: Optional[Dict[str, Any]] = None
        self._jwks_fetched_at = 0.0

    @property
    def issuer(self) -> str:
        return f"https://{self.domain}/"

    async def _fetch_jwks(self) -> Dict[str, Any]:
        url = f"https://{self.domain}/.well-known/jwks.json"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            return resp.json()

    async def _signing_key(self, kid: str) -> Optional[Dict[str, str]]:
        stale = (time.time() - self._jwks_fetched_at) >= JWKS_CACHE_TTL
        for attempt in range(2):
            if self._jwks is None or stale or attempt == 1:
                logger.info("Refreshing Auth0 JWKS from %s", self.domain)
                self._jwks = await self._fetch_jwks()
                self._jwks_fetched_at = time.time()
            for key in self._jwks.get("keys", []):
                if key.get("kid") == kid:
                    return {name: key[name] for name in ("kty", "kid", "use", "n", "e")}
            stale = False
        return None

    async def verify(self, token: str) -> Dict[str, Any]:
        """
        Decode and validate a token (signature, issuer, audience, expiry).

        Raises:
            TokenVerificationError: if the token cannot be trusted.
        """
        if not self.domain or not self.audience:
            raise TokenVerificationError("Auth0 domain and audience must be configured")

        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise TokenVerificationError(f"Invalid token header: {e}")

        kid = header.get("kid")
        if not kid:
            raise TokenVerificationError("Token header missing 'kid'")

        rsa_key = await self._signing_key(kid)
        if not rsa_key:
            raise TokenVerificationError(f"Unable to find matching key for kid={kid}")

        try:
            return jwt.decode(
                token,
                rsa_key,
                algorithms=["RS256"],
                audience=self.audience,
                issuer=self.issuer,
            )
        except JWTError as e:
            raise TokenVerificationError(f"Token verification failed: {e}")


def extract_email(payload: Dict[str, Any]) -> str:
    for claim in EMAIL_CLAIMS:
        if payload.get(claim):
            return payload[claim]
    return ""


_verifier: Optional[Auth0Verifier] = None


def get_verifier() -> Auth0Verifier:
    global _verifier
    settings = get_settings()
    if _verifier is None or _verifier.domain != settings.auth0_domain:
        _verifier = Auth0Verifier(
            settings.auth0_domain, settings.auth0_audience, settings.http_timeout_seconds
        )
    return _verifier
