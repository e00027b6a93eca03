"""
User registration, login and lookup.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import USERS, create_document, parse_object_id
from errors import Conflict, Unauthorized, ValidationError
from schemas import User
from security import CredentialService
from validators import validate_email, validate_password, validate_username

logger = logging.getLogger("gamevault.auth")

PUBLIC_PROJECTION = {"password_hash": 0}


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_id(db: Database, user_id: Any) -> Optional[Dict[str, Any]]:
    """Live user record without the password hash, or None for unknown/malformed ids."""
    try:
        oid = parse_object_id(user_id)
    except ValidationError:
        return None
    return db[USERS].find_one({"_id": oid}, PUBLIC_PROJECTION)


def register_user(db: Database, credentials: CredentialService,
                  username: Optional[str], email: Optional[str],
                  password: Optional[str]) -> Dict[str, Any]:
    if not username or not email or not password:
        raise ValidationError("Please provide username, email, and password")

    username = username.strip()
    email = normalize_email(email)

    if not validate_username(username):
        raise ValidationError("Username must be 3-20 characters long")
    if not validate_email(email):
        raise ValidationError("Please provide a valid email address")
    if not validate_password(password):
        raise ValidationError("Password must be at least 6 characters long")

    users = db[USERS]
    if users.find_one({"email": email}, {"_id": 1}):
        raise Conflict("Email already registered")
    if users.find_one({"username": username}, {"_id": 1}):
        raise Conflict("Username already taken")

    user = User(
        username=username,
        email=email,
        password_hash=credentials.get_password_hash(password),
    )
    try:
        user_id = create_document(db, USERS, user)
    except DuplicateKeyError:
        # lost a race against a concurrent registration
        raise Conflict("Email or username already registered")

    logger.info("Registered user %s (%s)", username, user_id)
    return get_user_by_id(db, user_id)


def authenticate(db: Database, credentials: CredentialService,
                 email: Optional[str], password: Optional[str]) -> Tuple[str, Dict[str, Any]]:
    """Check a login and return ``(token, user)``."""
    if not email or not password:
        raise ValidationError("Please provide email and password")

    user = db[USERS].find_one({"email": normalize_email(email)})
    if not user or not credentials.verify_password(password, user.get("password_hash", "")):
        logger.info("Failed login attempt")
        raise Unauthorized("Invalid email or password")

    token = credentials.create_access_token(str(user["_id"]), user["email"])
    user.pop("password_hash", None)
    return token, user
