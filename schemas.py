"""
Database and API schemas for GameVault

The document models map to MongoDB collections (``users`` and ``games``);
the API models describe request bodies and the response envelope. JSON
field names are camelCase on the wire and snake_case in Python and storage.
"""
from datetime import datetime
from typing import Any, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from validators import Genre, Platform


# Stored documents

class User(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    username: str = Field(..., description="Unique display name, 3-20 chars")
    email: str = Field(..., description="Unique lowercased email address")
    password_hash: str = Field(..., description="BCrypt hashed password")
    owned_games: List[ObjectId] = Field(default_factory=list, description="Game ids the user owns")
    wishlist: List[ObjectId] = Field(default_factory=list, description="Game ids the user wants")


class Game(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, use_enum_values=True)

    title: str = Field(..., max_length=100)
    platform: Platform
    genre: Genre
    year: int
    rating: float
    description: str = Field(..., max_length=500)
    developer: Optional[str] = Field(None, max_length=100)
    publisher: Optional[str] = Field(None, max_length=100)
    poster_url: Optional[str] = Field(None, max_length=300)
    added_by: ObjectId = Field(..., description="Id of the user who added the game")


# Request bodies

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterBody(CamelModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginBody(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class GameFields(CamelModel):
    """Game input. Every field is optional here; the game service decides
    which ones are required for the operation at hand."""

    title: Optional[str] = None
    platform: Optional[str] = None
    genre: Optional[str] = None
    year: Optional[int] = None
    rating: Optional[float] = None
    description: Optional[str] = None
    developer: Optional[str] = None
    publisher: Optional[str] = None
    poster_url: Optional[str] = None


class BulkGamesBody(CamelModel):
    games: Optional[List[GameFields]] = None


class GameRef(CamelModel):
    game_id: Optional[str] = None


# Responses

class UserOut(CamelModel):
    id: str
    username: str
    email: str


class GameOut(CamelModel):
    id: str
    title: str
    platform: str
    genre: str
    year: int
    rating: float
    description: str
    developer: Optional[str] = None
    publisher: Optional[str] = None
    poster_url: Optional[str] = None
    added_by: str
    added_by_username: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Envelope(CamelModel):
    success: bool = True
    message: Optional[str] = None


class UserEnvelope(Envelope):
    user: UserOut


class LoginEnvelope(Envelope):
    token: str
    user: UserOut


class GameEnvelope(Envelope):
    game: GameOut


class GameListEnvelope(Envelope):
    count: int
    games: List[GameOut]


class ErrorEnvelope(Envelope):
    success: bool = False
    error: Optional[Any] = None
