"""Per-user game lists: the owned collection and the wishlist."""
import logging
from typing import Any, Dict, List

from bson import ObjectId
from pymongo.database import Database

from database import GAMES, USERS, now_utc, parse_object_id, run_in_transaction, session_kwargs
from errors import Conflict, NotFound, ValidationError

logger = logging.getLogger("gamevault.library")

COLLECTION = "owned_games"
WISHLIST = "wishlist"

_LABELS = {COLLECTION: "collection", WISHLIST: "wishlist"}


def _game_oid(game_id: Any) -> ObjectId:
    if game_id is None or game_id == "":
        raise ValidationError("Game ID is required")
    return parse_object_id(game_id, "Invalid game id")


def list_games(db: Database, user_id: ObjectId, field: str) -> List[Dict[str, Any]]:
    """Resolve a user's list to game records, in list order.

    References whose game no longer exists are skipped.
    """
    user = db[USERS].find_one({"_id": user_id}, {field: 1})
    if user is None:
        raise NotFound("User not found")
    ids = user.get(field) or []
    found = {g["_id"]: g for g in db[GAMES].find({"_id": {"$in": ids}})}
    return [found[i] for i in ids if i in found]


def add_game(db: Database, user_id: ObjectId, game_id: Any, field: str, session=None) -> ObjectId:
    gid = _game_oid(game_id)
    kwargs = session_kwargs(session)
    if db[GAMES].find_one({"_id": gid}, {"_id": 1}, **kwargs) is None:
        raise NotFound("Game not found")

    user = db[USERS].find_one({"_id": user_id}, {field: 1}, **kwargs)
    if user is None:
        raise NotFound("User not found")
    if gid in (user.get(field) or []):
        raise Conflict(f"Game already in your {_LABELS[field]}")

    # $addToSet keeps the list duplicate-free if two adds race past the check
    db[USERS].update_one(
        {"_id": user_id},
        {"$addToSet": {field: gid}, "$set": {"updated_at": now_utc()}},
        **kwargs,
    )
    logger.info("User %s added game %s to %s", user_id, gid, _LABELS[field])
    return gid


def remove_game(db: Database, user_id: ObjectId, game_id: Any, field: str, session=None) -> bool:
    """Pull a game from a list. Removing an absent id succeeds; returns whether anything changed."""
    gid = _game_oid(game_id)
    result = db[USERS].update_one(
        {"_id": user_id, field: gid},
        {"$pull": {field: gid}, "$set": {"updated_at": now_utc()}},
        **session_kwargs(session),
    )
    return result.modified_count > 0


def get_collection(db: Database, user_id: ObjectId) -> List[Dict[str, Any]]:
    return list_games(db, user_id, COLLECTION)


def get_wishlist(db: Database, user_id: ObjectId) -> List[Dict[str, Any]]:
    return list_games(db, user_id, WISHLIST)


def add_to_collection(db: Database, user_id: ObjectId, game_id: Any) -> ObjectId:
    return add_game(db, user_id, game_id, COLLECTION)


def add_to_wishlist(db: Database, user_id: ObjectId, game_id: Any) -> ObjectId:
    return add_game(db, user_id, game_id, WISHLIST)


def remove_from_collection(db: Database, user_id: ObjectId, game_id: Any) -> bool:
    return remove_game(db, user_id, game_id, COLLECTION)


def remove_from_wishlist(db: Database, user_id: ObjectId, game_id: Any) -> bool:
    return remove_game(db, user_id, game_id, WISHLIST)


def move_to_collection(db: Database, user_id: ObjectId, game_id: Any) -> ObjectId:
    """Add a game to the collection, then drop it from the wishlist.

    A game already in the collection is still removed from the wishlist.
    Without transactions the two steps are separate writes, so a failure
    after the first leaves the game on both lists.
    """
    def _move(session):
        try:
            gid = add_game(db, user_id, game_id, COLLECTION, session)
        except Conflict:
            gid = _game_oid(game_id)
            logger.debug("Game %s already owned by %s; only clearing wishlist", gid, user_id)
        remove_game(db, user_id, gid, WISHLIST, session)
        return gid

    return run_in_transaction(db, _move)
