"""
MongoDB access for GameVault.

Holds the process-wide client, collection names, index setup and the small
document helpers the services share.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from errors import InternalError, ValidationError

USERS = "users"
GAMES = "games"

logger = logging.getLogger("gamevault.database")

client: Optional[MongoClient] = None
db: Optional[Database] = None
use_transactions = False


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def connect(settings) -> Database:
    """Open the client, ping the server and create indexes.

    Raises pymongo errors when the server cannot be reached.
    """
    global client, db, use_transactions
    client = MongoClient(settings.mongodb_uri, serverSelectionTimeoutMS=5000, tz_aware=True)
    client.admin.command("ping")
    db = client[settings.mongodb_db]
    use_transactions = settings.use_transactions
    ensure_indexes(db)
    logger.info("Connected to MongoDB database %s", settings.mongodb_db)
    return db


def close() -> None:
    global client, db
    if client is not None:
        client.close()
    client = None
    db = None


def get_db() -> Database:
    if db is None:
        raise InternalError("Database not available")
    return db


def ensure_indexes(database: Database) -> None:
    users = database[USERS]
    users.create_index([("username", ASCENDING)], unique=True)
    users.create_index([("email", ASCENDING)], unique=True)

    games = database[GAMES]
    games.create_index([("added_by", ASCENDING), ("created_at", DESCENDING)])
    games.create_index([("platform", ASCENDING)])
    games.create_index([("genre", ASCENDING)])
    games.create_index([("rating", DESCENDING), ("created_at", DESCENDING)])
    games.create_index([("created_at", DESCENDING)])


def parse_object_id(value: Any, message: str = "Invalid id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationError(message)


def _as_document(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_none=True)
    return dict(data)


def session_kwargs(session) -> Dict[str, Any]:
    return {"session": session} if session is not None else {}


def create_document(database: Database, collection_name: str,
                    data: Union[BaseModel, Dict[str, Any]], session=None) -> ObjectId:
    """Insert one document stamped with created_at/updated_at; returns its id."""
    doc = _as_document(data)
    now = now_utc()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    result = database[collection_name].insert_one(doc, **session_kwargs(session))
    return result.inserted_id


def create_documents(database: Database, collection_name: str,
                     items: Iterable[Union[BaseModel, Dict[str, Any]]],
                     session=None) -> List[Dict[str, Any]]:
    """Insert many documents in a single ordered call; returns them with their ids."""
    now = now_utc()
    docs = []
    for item in items:
        doc = _as_document(item)
        doc.setdefault("created_at", now)
        doc["updated_at"] = now
        docs.append(doc)
    if not docs:
        return []
    result = database[collection_name].insert_many(docs, ordered=True, **session_kwargs(session))
    for doc, inserted_id in zip(docs, result.inserted_ids):
        doc["_id"] = inserted_id
    return docs


def get_documents(database: Database, collection_name: str,
                  filter_dict: Optional[Dict[str, Any]] = None,
                  sort: Optional[List] = None,
                  projection: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    cursor = database[collection_name].find(filter_dict or {}, projection)
    if sort:
        cursor = cursor.sort(sort)
    return list(cursor)


def run_in_transaction(database: Database, callback: Callable[[Any], Any]) -> Any:
    """Run ``callback(session)`` inside a transaction when enabled, else with ``None``.

    Without transactions the writes in ``callback`` are independent and a
    failure between them leaves the earlier ones applied.
    """
    if not use_transactions:
        return callback(None)
    with database.client.start_session() as session:
        return session.with_transaction(callback)
