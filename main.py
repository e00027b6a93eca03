import logging
import sys
import time
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import accounts
import database
import games
import library
from config import Settings, load_settings
from errors import GameVaultError, Unauthorized
from schemas import (
    BulkGamesBody,
    Envelope,
    ErrorEnvelope,
    GameEnvelope,
    GameFields,
    GameListEnvelope,
    GameOut,
    GameRef,
    LoginBody,
    LoginEnvelope,
    RegisterBody,
    UserEnvelope,
    UserOut,
)
from security import CredentialService, InvalidToken

logger = logging.getLogger("gamevault")
auth_logger = logging.getLogger("gamevault.auth")


@lru_cache
def get_settings() -> Settings:
    return load_settings()


@lru_cache
def get_credentials() -> CredentialService:
    return CredentialService.from_settings(get_settings())


def get_db() -> Database:
    return database.get_db()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        settings = get_settings()
        database.connect(settings)
    except (RuntimeError, PyMongoError) as exc:
        logger.critical("Startup failed: %s", exc)
        raise
    yield
    database.close()


# App and CORS
app = FastAPI(title="GameVault API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = (time.perf_counter() - started) * 1000
    logger.info("%s %s -> %d (%.1f ms)", request.method, request.url.path, response.status_code, elapsed)
    return response


# Error handling
def error_response(status_code: int, message: str, error: Any = None) -> JSONResponse:
    envelope = ErrorEnvelope(message=message, error=error)
    return JSONResponse(status_code=status_code, content=envelope.model_dump(exclude_none=True))


@app.exception_handler(GameVaultError)
async def gamevault_error_handler(_: Request, exc: GameVaultError):
    if exc.status_code >= 500:
        logger.error("Request failed: %s", exc.message)
    return error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid value for {field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request body"
    return error_response(status.HTTP_400_BAD_REQUEST, message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_: Request, exc: StarletteHTTPException):
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return error_response(exc.status_code, message)


@app.exception_handler(Exception)
async def unhandled_exception_handler(_: Request, exc: Exception):
    logger.exception("Unhandled error")
    detail = f"{type(exc).__name__}: {exc}" if get_settings().debug else None
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", detail)


# Helpers
def user_doc_to_out(doc) -> UserOut:
    return UserOut(id=str(doc["_id"]), username=doc.get("username"), email=doc.get("email"))


def game_doc_to_out(doc, usernames: Optional[Dict] = None) -> GameOut:
    added_by = doc.get("added_by")
    return GameOut(
        id=str(doc["_id"]),
        title=doc.get("title"),
        platform=doc.get("platform"),
        genre=doc.get("genre"),
        year=doc.get("year"),
        rating=doc.get("rating"),
        description=doc.get("description"),
        developer=doc.get("developer"),
        publisher=doc.get("publisher"),
        poster_url=doc.get("poster_url"),
        added_by=str(added_by),
        added_by_username=(usernames or {}).get(added_by),
        created_at=doc.get("created_at"),
        updated_at=doc.get("updated_at"),
    )


def game_envelope(db: Database, doc, message: Optional[str] = None) -> GameEnvelope:
    return GameEnvelope(message=message, game=game_doc_to_out(doc, games.owner_usernames(db, [doc])))


def game_list_envelope(db: Database, docs: List[Dict], message: Optional[str] = None) -> GameListEnvelope:
    usernames = games.owner_usernames(db, docs)
    return GameListEnvelope(
        message=message,
        count=len(docs),
        games=[game_doc_to_out(d, usernames) for d in docs],
    )


# Authorization gate
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def require_auth(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Database = Depends(get_db),
    credentials: CredentialService = Depends(get_credentials),
) -> Dict[str, Any]:
    """Resolve ``Authorization: Bearer <token>`` to a live user (without password hash)."""
    if not token:
        auth_logger.info("Rejected request: missing or malformed bearer header")
        raise Unauthorized("Not authorized, no token provided")

    try:
        claims = credentials.decode_access_token(token)
    except InvalidToken:
        auth_logger.warning("Rejected request: token failed verification")
        raise Unauthorized("Not authorized, token failed")

    user = accounts.get_user_by_id(db, claims["id"])
    if user is None:
        auth_logger.warning("Rejected request: token user %s no longer exists", claims["id"])
        raise Unauthorized("User not found")
    return user


# Routes
@app.get("/", response_model=Envelope)
def read_root():
    return Envelope(message="GameVault API is running")


api = APIRouter(prefix="/api", responses={401: {"model": Envelope}})


# Auth Endpoints
@api.post("/auth/register", status_code=201, response_model=UserEnvelope,
          response_model_exclude_none=True)
def register(body: RegisterBody, db: Database = Depends(get_db),
             credentials: CredentialService = Depends(get_credentials)):
    user = accounts.register_user(db, credentials, body.username, body.email, body.password)
    return UserEnvelope(message="User registered successfully", user=user_doc_to_out(user))


@api.post("/auth/login", response_model=LoginEnvelope, response_model_exclude_none=True)
def login(body: LoginBody, db: Database = Depends(get_db),
          credentials: CredentialService = Depends(get_credentials)):
    token, user = accounts.authenticate(db, credentials, body.email, body.password)
    return LoginEnvelope(message="Login successful", token=token, user=user_doc_to_out(user))


@api.get("/auth/me", response_model=UserEnvelope, response_model_exclude_none=True)
def me(current: Dict[str, Any] = Depends(require_auth)):
    return UserEnvelope(user=user_doc_to_out(current))


# Game Endpoints
@api.get("/games", response_model=GameListEnvelope, response_model_exclude_none=True)
def list_user_games(current: Dict[str, Any] = Depends(require_auth), db: Database = Depends(get_db)):
    return game_list_envelope(db, games.list_by_owner(db, current["_id"]))


@api.post("/games", status_code=201, response_model=GameEnvelope, response_model_exclude_none=True)
def create_game(body: GameFields, current: Dict[str, Any] = Depends(require_auth),
                db: Database = Depends(get_db)):
    doc = games.add_game(db, current["_id"], body.model_dump(exclude_unset=True))
    return game_envelope(db, doc, "Game added successfully")


@api.post("/games/bulk", status_code=201, response_model=GameListEnvelope,
          response_model_exclude_none=True)
def create_games_bulk(body: BulkGamesBody, current: Dict[str, Any] = Depends(require_auth),
                      db: Database = Depends(get_db)):
    items = [g.model_dump(exclude_unset=True) for g in body.games] if body.games else None
    docs = games.add_bulk(db, current["_id"], items)
    return game_list_envelope(db, docs, "Games added successfully")


@api.get("/games/all", response_model=GameListEnvelope, response_model_exclude_none=True)
def list_all_games(current: Dict[str, Any] = Depends(require_auth), db: Database = Depends(get_db)):
    return game_list_envelope(db, games.list_all(db))


@api.get("/games/top-rated", response_model=GameListEnvelope, response_model_exclude_none=True)
def list_top_rated(current: Dict[str, Any] = Depends(require_auth), db: Database = Depends(get_db)):
    return game_list_envelope(db, games.list_top_rated(db))


@api.get("/games/platform/{platform}", response_model=GameListEnvelope,
         response_model_exclude_none=True)
def list_by_platform(platform: str, current: Dict[str, Any] = Depends(require_auth),
                     db: Database = Depends(get_db)):
    return game_list_envelope(db, games.list_by_platform(db, platform))


@api.get("/games/genre/{genre}", response_model=GameListEnvelope, response_model_exclude_none=True)
def list_by_genre(genre: str, current: Dict[str, Any] = Depends(require_auth),
                  db: Database = Depends(get_db)):
    return game_list_envelope(db, games.list_by_genre(db, genre))


# Collection Endpoints
@api.get("/games/user/collection", response_model=GameListEnvelope,
         response_model_exclude_none=True)
def get_collection(current: Dict[str, Any] = Depends(require_auth), db: Database = Depends(get_db)):
    return game_list_envelope(db, library.get_collection(db, current["_id"]))


@api.post("/games/user/collection", response_model=Envelope, response_model_exclude_none=True)
def add_to_collection(body: GameRef, current: Dict[str, Any] = Depends(require_auth),
                      db: Database = Depends(get_db)):
    library.add_to_collection(db, current["_id"], body.game_id)
    return Envelope(message="Game added to collection")


@api.delete("/games/user/collection/{game_id}", response_model=Envelope,
            response_model_exclude_none=True)
def remove_from_collection(game_id: str, current: Dict[str, Any] = Depends(require_auth),
                           db: Database = Depends(get_db)):
    library.remove_from_collection(db, current["_id"], game_id)
    return Envelope(message="Game removed from collection")


# Wishlist Endpoints
@api.get("/games/user/wishlist", response_model=GameListEnvelope, response_model_exclude_none=True)
def get_wishlist(current: Dict[str, Any] = Depends(require_auth), db: Database = Depends(get_db)):
    return game_list_envelope(db, library.get_wishlist(db, current["_id"]))


@api.post("/games/user/wishlist", response_model=Envelope, response_model_exclude_none=True)
def add_to_wishlist(body: GameRef, current: Dict[str, Any] = Depends(require_auth),
                    db: Database = Depends(get_db)):
    library.add_to_wishlist(db, current["_id"], body.game_id)
    return Envelope(message="Game added to wishlist")


@api.delete("/games/user/wishlist/{game_id}", response_model=Envelope,
            response_model_exclude_none=True)
def remove_from_wishlist(game_id: str, current: Dict[str, Any] = Depends(require_auth),
                         db: Database = Depends(get_db)):
    library.remove_from_wishlist(db, current["_id"], game_id)
    return Envelope(message="Game removed from wishlist")


@api.post("/games/user/wishlist/{game_id}/move", response_model=Envelope,
          response_model_exclude_none=True)
def move_to_collection(game_id: str, current: Dict[str, Any] = Depends(require_auth),
                       db: Database = Depends(get_db)):
    library.move_to_collection(db, current["_id"], game_id)
    return Envelope(message="Moved to your collection")


# Single game routes come last so /games/{game_id} does not shadow the fixed paths
@api.get("/games/{game_id}", response_model=GameEnvelope, response_model_exclude_none=True)
def get_game(game_id: str, current: Dict[str, Any] = Depends(require_auth),
             db: Database = Depends(get_db)):
    return game_envelope(db, games.get_game(db, game_id))


@api.put("/games/{game_id}", response_model=GameEnvelope, response_model_exclude_none=True)
def update_game(game_id: str, body: GameFields, current: Dict[str, Any] = Depends(require_auth),
                db: Database = Depends(get_db)):
    doc = games.update_game(db, game_id, body.model_dump(exclude_unset=True))
    return game_envelope(db, doc, "Game updated successfully")


@api.delete("/games/{game_id}", response_model=Envelope, response_model_exclude_none=True)
def delete_game(game_id: str, current: Dict[str, Any] = Depends(require_auth),
                db: Database = Depends(get_db)):
    games.delete_game(db, game_id)
    return Envelope(message="Game deleted successfully")


app.include_router(api)


def run() -> None:
    try:
        settings = get_settings()
    except RuntimeError as exc:
        configure_logging()
        logger.critical("%s", exc)
        sys.exit(1)
    configure_logging(settings.log_level)

    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
