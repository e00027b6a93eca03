"""Game catalog operations: validation, CRUD, filters and reference cleanup."""
import logging
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pymongo import DESCENDING
from pymongo.database import Database

from database import (
    GAMES,
    USERS,
    create_document,
    create_documents,
    get_documents,
    now_utc,
    parse_object_id,
    run_in_transaction,
    session_kwargs,
)
from errors import NotFound, ValidationError
from schemas import Game
from validators import (
    DESCRIPTION_MAX,
    DEVELOPER_MAX,
    POSTER_URL_MAX,
    PUBLISHER_MAX,
    TITLE_MAX,
    TOP_RATED_THRESHOLD,
    validate_genre,
    validate_length,
    validate_platform,
    validate_rating,
    validate_year,
)

logger = logging.getLogger("gamevault.games")

REQUIRED_FIELDS = ("title", "platform", "genre", "year", "rating", "description")
OPTIONAL_FIELDS = ("developer", "publisher", "poster_url")

_TEXT_LIMITS = {
    "title": ("Title", TITLE_MAX),
    "description": ("Description", DESCRIPTION_MAX),
    "developer": ("Developer name", DEVELOPER_MAX),
    "publisher": ("Publisher name", PUBLISHER_MAX),
    "poster_url": ("Poster URL", POSTER_URL_MAX),
}

NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]
TOP_RATED_ORDER = [("rating", DESCENDING), ("created_at", DESCENDING), ("_id", DESCENDING)]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _clean_field(name: str, value: Any, suffix: str = "") -> Any:
    """Validate one present field and return its stored form."""
    if name == "platform":
        if not validate_platform(value):
            raise ValidationError(f"Invalid platform{suffix}")
        return value
    if name == "genre":
        if not validate_genre(value):
            raise ValidationError(f"Invalid genre{suffix}")
        return value
    if name == "year":
        if not validate_year(value):
            raise ValidationError(f"Year must be between 1980 and 2025{suffix}")
        return int(value)
    if name == "rating":
        if not validate_rating(value):
            raise ValidationError(f"Rating must be between 0 and 5{suffix}")
        return float(value)
    label, limit = _TEXT_LIMITS[name]
    if not isinstance(value, str):
        raise ValidationError(f"{label} must be text{suffix}")
    value = value.strip()
    if not validate_length(value, limit):
        raise ValidationError(f"{label} cannot exceed {limit} characters{suffix}")
    return value


def validate_new_game(fields: Dict[str, Any], suffix: str = "") -> Dict[str, Any]:
    """Check a complete game payload and return the cleaned fields."""
    if any(_is_blank(fields.get(name)) for name in REQUIRED_FIELDS):
        if suffix:
            raise ValidationError(
                "Each game must include title, platform, genre, year, rating, and description"
            )
        raise ValidationError("Please provide all required fields")

    cleaned = {name: _clean_field(name, fields[name], suffix) for name in REQUIRED_FIELDS}
    for name in OPTIONAL_FIELDS:
        if not _is_blank(fields.get(name)):
            cleaned[name] = _clean_field(name, fields[name], suffix)
    return cleaned


def add_game(db: Database, owner_id: ObjectId, fields: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = validate_new_game(fields)
    game = Game(**cleaned, added_by=owner_id)
    game_id = create_document(db, GAMES, game)
    logger.info("User %s added game %s (%s)", owner_id, game_id, cleaned["title"])
    return db[GAMES].find_one({"_id": game_id})


def add_bulk(db: Database, owner_id: ObjectId,
             items: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """Validate every element first, then insert them in one call.

    The first invalid element in input order fails the whole request before
    anything is written.
    """
    if not items:
        raise ValidationError('Please provide a non-empty "games" array')

    to_insert = []
    for fields in items:
        title = fields.get("title")
        suffix = f" for game: {title}" if title else " for game"
        cleaned = validate_new_game(fields, suffix)
        to_insert.append(Game(**cleaned, added_by=owner_id))

    created = create_documents(db, GAMES, to_insert)
    logger.info("User %s bulk-added %d games", owner_id, len(created))
    return created


def get_game(db: Database, game_id: Any) -> Dict[str, Any]:
    oid = parse_object_id(game_id, "Invalid game id")
    game = db[GAMES].find_one({"_id": oid})
    if game is None:
        raise NotFound("Game not found")
    return game


def update_game(db: Database, game_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
    """Apply a partial update.

    Only keys present in ``fields`` are touched. Required fields may not be
    blanked; optional fields sent as null or empty are removed. Any
    authenticated caller may update any game.
    """
    game = get_game(db, game_id)

    changes: Dict[str, Any] = {}
    removed: Dict[str, str] = {}
    for name, value in fields.items():
        if name in REQUIRED_FIELDS:
            if _is_blank(value):
                raise ValidationError(f"{name.capitalize()} cannot be empty")
            changes[name] = _clean_field(name, value)
        elif name in OPTIONAL_FIELDS:
            if _is_blank(value):
                removed[name] = ""
            else:
                changes[name] = _clean_field(name, value)

    if not changes and not removed:
        return game

    update: Dict[str, Any] = {"$set": {**changes, "updated_at": now_utc()}}
    if removed:
        update["$unset"] = removed
    db[GAMES].update_one({"_id": game["_id"]}, update)
    return db[GAMES].find_one({"_id": game["_id"]})


def delete_game(db: Database, game_id: Any) -> Dict[str, Any]:
    """Delete a game and pull its id from every user's collection and wishlist.

    Without transactions the cascade is a second, independent write.
    """
    oid = parse_object_id(game_id, "Invalid game id")

    def _delete(session):
        kwargs = session_kwargs(session)
        game = db[GAMES].find_one_and_delete({"_id": oid}, **kwargs)
        if game is None:
            raise NotFound("Game not found")
        result = db[USERS].update_many(
            {"$or": [{"owned_games": oid}, {"wishlist": oid}]},
            {"$pull": {"owned_games": oid, "wishlist": oid}},
            **kwargs,
        )
        logger.info("Deleted game %s; cleaned references in %d users", oid, result.modified_count)
        return game

    return run_in_transaction(db, _delete)


def list_all(db: Database) -> List[Dict[str, Any]]:
    return get_documents(db, GAMES, sort=NEWEST_FIRST)


def list_by_owner(db: Database, owner_id: ObjectId) -> List[Dict[str, Any]]:
    return get_documents(db, GAMES, {"added_by": owner_id}, sort=NEWEST_FIRST)


def list_by_platform(db: Database, platform: str) -> List[Dict[str, Any]]:
    return get_documents(db, GAMES, {"platform": platform}, sort=NEWEST_FIRST)


def list_by_genre(db: Database, genre: str) -> List[Dict[str, Any]]:
    return get_documents(db, GAMES, {"genre": genre}, sort=NEWEST_FIRST)


def list_top_rated(db: Database, threshold: float = TOP_RATED_THRESHOLD) -> List[Dict[str, Any]]:
    return get_documents(db, GAMES, {"rating": {"$gte": threshold}}, sort=TOP_RATED_ORDER)


def owner_usernames(db: Database, games: Iterable[Dict[str, Any]]) -> Dict[ObjectId, str]:
    """Map each distinct ``added_by`` id to its username."""
    owner_ids = list({g["added_by"] for g in games if g.get("added_by") is not None})
    if not owner_ids:
        return {}
    users = db[USERS].find({"_id": {"$in": owner_ids}}, {"username": 1})
    return {u["_id"]: u["username"] for u in users}
