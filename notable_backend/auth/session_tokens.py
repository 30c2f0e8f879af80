"""
Locally signed session tokens.

Tokens are HS256 JWTs carrying the local user id and email. The header names
the signing key (`kid`) so a retired key can keep verifying old tokens while
new ones are signed with the active key.
"""
from calendar import timegm
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from notable_backend.errors import ExpiredToken, InvalidToken, MalformedToken

ALGORITHM = "HS256"
DEFAULT_TTL = timedelta(hours=1)


@dataclass(frozen=True)
class SessionClaims:
    user_id: int
    email: str
    issued_at: datetime
    expires_at: datetime

    def as_payload(self) -> Dict[str, Any]:
        """The decoded token as it appears on the wire."""
        return {
            "userId": self.user_id,
            "email": self.email,
            "iat": timegm(self.issued_at.utctimetuple()),
            "exp": timegm(self.expires_at.utctimetuple()),
        }


# PUBLIC_INTERFACE
class SessionTokenService:
    """Issues and verifies session tokens against a fixed key map."""

    def __init__(self, keys: Mapping[str, str], active_key_id: str, ttl: timedelta = DEFAULT_TTL):
        if active_key_id not in keys:
            raise ValueError(f"Active key id {active_key_id!r} has no secret.")
        self._keys = dict(keys)
        self.active_key_id = active_key_id
        self.ttl = ttl

    def issue(self, user_id: int, email: str, expires_delta: Optional[timedelta] = None) -> str:
        """Mint a token for a local user, expiring after the configured TTL."""
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta if expires_delta is not None else self.ttl)
        claims = {"userId": user_id, "email": email, "iat": now, "exp": expire}
        return jwt.encode(
            claims,
            self._keys[self.active_key_id],
            algorithm=ALGORITHM,
            headers={"kid": self.active_key_id},
        )

    def verify(self, token: str) -> SessionClaims:
        """
        Decode and check a token.

        Raises MalformedToken when the input is not a JWT at all, InvalidToken
        for a bad signature or unknown key, ExpiredToken once `exp` has passed.
        """
        if not token:
            raise MalformedToken("No token provided")
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise MalformedToken(f"Malformed token: {exc}") from exc

        kid = header.get("kid", self.active_key_id)
        if not isinstance(kid, str):
            raise InvalidToken("Token is not valid: bad key id")
        key = self._keys.get(kid)
        if key is None:
            raise InvalidToken("Token is not valid: unknown signing key")

        try:
            payload = jwt.decode(token, key, algorithms=[ALGORITHM], options={"require_exp": True})
        except ExpiredSignatureError as exc:
            raise ExpiredToken("Token has expired") from exc
        except JWTError as exc:
            raise InvalidToken(f"Token is not valid: {exc}") from exc

        user_id = payload.get("userId")
        email = payload.get("email")
        if not isinstance(user_id, int) or not isinstance(email, str):
            raise InvalidToken("Token is not valid: missing user claims")

        return SessionClaims(
            user_id=user_id,
            email=email,
            issued_at=datetime.fromtimestamp(payload.get("iat", payload["exp"]), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
