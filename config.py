"""
Runtime configuration for the GameVault API.

Values come from the process environment; a local .env file is loaded first
when present.
"""
import os
import re
from dataclasses import dataclass
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()

DEFAULT_TOKEN_LIFETIME = "7d"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> timedelta:
    """Parse '7d', '12h', '30m', '45s' or a bare number of seconds."""
    match = _DURATION_RE.match(value or "")
    if not match:
        raise RuntimeError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    seconds = int(amount) * _UNIT_SECONDS[unit]
    if seconds <= 0:
        raise RuntimeError(f"Duration must be positive: {value!r}")
    return timedelta(seconds=seconds)


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    mongodb_uri: str
    mongodb_db: str
    jwt_secret: str
    token_lifetime: timedelta
    port: int
    bcrypt_rounds: int
    use_transactions: bool
    environment: str
    log_level: str

    @property
    def debug(self) -> bool:
        return self.environment == "development"


def load_settings() -> Settings:
    """Read settings from the environment; raises RuntimeError on missing/invalid values."""
    mongodb_uri = os.getenv("MONGODB_URI", "").strip()
    if not mongodb_uri:
        raise RuntimeError("Missing MONGODB_URI. Put it in your .env file.")

    jwt_secret = os.getenv("JWT_SECRET", "").strip()
    if not jwt_secret:
        raise RuntimeError("Missing JWT_SECRET. Put it in your .env file.")

    try:
        port = int(os.getenv("PORT", "5000"))
        bcrypt_rounds = int(os.getenv("BCRYPT_ROUNDS", "10"))
    except ValueError as exc:
        raise RuntimeError(f"Invalid numeric setting: {exc}") from exc

    return Settings(
        mongodb_uri=mongodb_uri,
        mongodb_db=os.getenv("MONGODB_DB", "gamevault").strip() or "gamevault",
        jwt_secret=jwt_secret,
        token_lifetime=parse_duration(os.getenv("JWT_EXPIRES_IN", DEFAULT_TOKEN_LIFETIME)),
        port=port,
        bcrypt_rounds=bcrypt_rounds,
        use_transactions=_flag("MONGODB_TRANSACTIONS"),
        environment=os.getenv("ENVIRONMENT", "production").strip().lower(),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    )
