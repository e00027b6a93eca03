"""
Credential handling: bcrypt password hashes and HS256 bearer tokens.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

ALGORITHM = "HS256"

logger = logging.getLogger("gamevault.auth")


class InvalidToken(Exception):
    """Bad signature, malformed structure or expired token; deliberately not told apart."""


class CredentialService:
    def __init__(self, secret_key: str, token_lifetime: timedelta, bcrypt_rounds: int = 10):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self.secret_key = secret_key
        self.token_lifetime = token_lifetime
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=bcrypt_rounds,
        )

    @classmethod
    def from_settings(cls, settings) -> "CredentialService":
        return cls(settings.jwt_secret, settings.token_lifetime, settings.bcrypt_rounds)

    def get_password_hash(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, password_hash: str) -> bool:
        """False on mismatch; a hash passlib cannot parse raises ValueError."""
        try:
            return self.pwd_context.verify(plain_password, password_hash)
        except (ValueError, TypeError):
            logger.error("Stored password hash is malformed or of an unknown scheme")
            raise

    def create_access_token(self, user_id: str, email: str,
                            expires_delta: Optional[timedelta] = None) -> str:
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or self.token_lifetime)
        to_encode = {"id": str(user_id), "email": email, "iat": now, "exp": expire}
        return jwt.encode(to_encode, self.secret_key, algorithm=ALGORITHM)

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        """Return ``{"id", "email"}`` from a valid token or raise InvalidToken."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
        except JWTError as exc:
            raise InvalidToken("Invalid or expired token") from exc
        user_id = payload.get("id")
        if not isinstance(user_id, str) or not user_id or "exp" not in payload:
            raise InvalidToken("Invalid or expired token")
        return {"id": user_id, "email": payload.get("email")}
