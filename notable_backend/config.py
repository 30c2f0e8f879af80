"""
Runtime settings loaded from the environment (and a local .env file when present).
"""
import os
from dataclasses import dataclass, field
from datetime import timedelta
from functools import lru_cache
from typing import Dict, List

from dotenv import load_dotenv


def _parse_retired_keys(raw: str) -> Dict[str, str]:
    """Parse `kid:secret,kid:secret` into a key map. Blank entries are skipped."""
    keys: Dict[str, str] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        kid, sep, secret = entry.partition(":")
        if not sep or not kid or not secret:
            raise ValueError(f"Malformed JWT_RETIRED_KEYS entry: {entry!r}")
        keys[kid.strip()] = secret.strip()
    return keys


def _parse_origins(raw: str) -> List[str]:
    return [o.strip() for o in raw.split(",") if o.strip()]


@dataclass(frozen=True)
class Settings:
    jwt_secret: str = "temporary_dev_secret"
    jwt_key_id: str = "primary"
    jwt_retired_keys: Dict[str, str] = field(default_factory=dict)
    session_ttl_minutes: int = 60
    provider_secret: str = "temporary_provider_secret"
    password_reset_url: str = "http://localhost:3000/reset-password"
    allowed_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    port: int = 8080
    log_level: str = "INFO"

    def __post_init__(self):
        if self.session_ttl_minutes <= 0:
            raise ValueError("SESSION_TTL_MINUTES must be positive.")
        if self.jwt_key_id in self.jwt_retired_keys:
            raise ValueError(f"Active key id {self.jwt_key_id!r} is also listed as retired.")

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(minutes=self.session_ttl_minutes)

    @property
    def signing_keys(self) -> Dict[str, str]:
        """Every key a session token may be verified with, active key included."""
        keys = dict(self.jwt_retired_keys)
        keys[self.jwt_key_id] = self.jwt_secret
        return keys

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            jwt_secret=os.getenv("JWT_SECRET", cls.jwt_secret),
            jwt_key_id=os.getenv("JWT_KEY_ID", cls.jwt_key_id),
            jwt_retired_keys=_parse_retired_keys(os.getenv("JWT_RETIRED_KEYS", "")),
            session_ttl_minutes=int(os.getenv("SESSION_TTL_MINUTES", cls.session_ttl_minutes)),
            provider_secret=os.getenv("PROVIDER_SECRET", cls.provider_secret),
            password_reset_url=os.getenv("PASSWORD_RESET_URL", cls.password_reset_url),
            allowed_origins=_parse_origins(os.getenv("ALLOWED_ORIGINS", "http://localhost:3000")),
            port=int(os.getenv("PORT", cls.port)),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings are read once per process; signing keys never change mid-process."""
    return Settings.from_env()
