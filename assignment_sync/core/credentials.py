"""
Client-side freshness checks for the assignments API bearer token.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from jose import jwt
from jose.exceptions import JOSEError


class ClaimsDecoder(ABC):
    """Turns a bearer token into its claims dictionary."""

    @abstractmethod
    def decode(self, token: str) -> Dict[str, Any]:
        """Return the token claims or raise ValueError/JOSEError."""
        pass


class UnverifiedClaimsDecoder(ClaimsDecoder):
    """
    Reads claims without checking the signature.

    The issuer verifies signatures; the client only needs ``exp`` to decide
    whether a refresh is due.
    """

    def decode(self, token: str) -> Dict[str, Any]:
        if token.count(".") != 2:
            raise ValueError("Token must have three dot-separated segments")
        return jwt.get_unverified_claims(token)


@dataclass(frozen=True)
class TokenStatus:
    valid: bool
    reason: str = ""
    expires_at: Optional[datetime] = None
    minutes_remaining: int = 0


class CredentialValidator:
    """Fail-closed expiry check for bearer tokens."""

    def __init__(self, decoder: Optional[ClaimsDecoder] = None):
        self.decoder = decoder or UnverifiedClaimsDecoder()

    def validate(self, token: Optional[str], now: Optional[datetime] = None) -> TokenStatus:
        if not token:
            return TokenStatus(valid=False, reason="token is missing")

        try:
            claims = self.decoder.decode(token)
        except (JOSEError, ValueError, TypeError) as e:
            return TokenStatus(valid=False, reason=f"could not decode token: {e}")

        exp = claims.get("exp")
        # bool is an int subclass; a boolean exp is malformed
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            return TokenStatus(valid=False, reason="token has no numeric exp claim")

        try:
            expires_at = datetime.fromtimestamp(exp, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return TokenStatus(valid=False, reason="token exp claim is out of range")

        now = now or datetime.now(timezone.utc)
        if expires_at <= now:
            return TokenStatus(valid=False, reason="token has expired", expires_at=expires_at)

        minutes = int(round((expires_at - now).total_seconds() / 60))
        return TokenStatus(valid=True, expires_at=expires_at, minutes_remaining=minutes)
