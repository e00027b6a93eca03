"""
Input predicates for game and user fields.

Every function is total: it returns a bool for any input and never raises.
"""
import re
from enum import Enum
from typing import Any


class Platform(str, Enum):
    pc = "PC"
    playstation = "PlayStation"
    xbox = "Xbox"
    nintendo_switch = "Nintendo Switch"
    multi_platform = "Multi-platform"


class Genre(str, Enum):
    rpg = "RPG"
    fps = "FPS"
    strategy = "Strategy"
    racing = "Racing"
    adventure = "Adventure"
    sports = "Sports"
    puzzle = "Puzzle"
    simulation = "Simulation"
    horror = "Horror"
    fighting = "Fighting"
    action = "Action"


VALID_PLATFORMS = frozenset(p.value for p in Platform)
VALID_GENRES = frozenset(g.value for g in Genre)

MIN_YEAR = 1980
MAX_YEAR = 2025
MIN_RATING = 0.0
MAX_RATING = 5.0
TOP_RATED_THRESHOLD = 4.5

USERNAME_MIN = 3
USERNAME_MAX = 20
PASSWORD_MIN = 6

TITLE_MAX = 100
DESCRIPTION_MAX = 500
DEVELOPER_MAX = 100
PUBLISHER_MAX = 100
POSTER_URL_MAX = 300
EMAIL_MAX = 254

EMAIL_RE = re.compile(r"^\w+(?:[.-]\w+)*@\w+(?:[.-]\w+)*\.\w{2,3}$")


def _is_number(value: Any) -> bool:
    # bool is an int subclass; a JSON true is not a year or a rating
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_platform(platform: Any) -> bool:
    return isinstance(platform, str) and platform in VALID_PLATFORMS


def validate_genre(genre: Any) -> bool:
    return isinstance(genre, str) and genre in VALID_GENRES


def validate_year(year: Any) -> bool:
    if not _is_number(year):
        return False
    if isinstance(year, float) and not year.is_integer():
        return False
    return MIN_YEAR <= year <= MAX_YEAR


def validate_rating(rating: Any) -> bool:
    if not _is_number(rating) or rating != rating:  # NaN
        return False
    return MIN_RATING <= rating <= MAX_RATING


def validate_email(email: Any) -> bool:
    if not isinstance(email, str) or len(email) > EMAIL_MAX:
        return False
    return EMAIL_RE.match(email) is not None


def validate_username(username: Any) -> bool:
    return isinstance(username, str) and USERNAME_MIN <= len(username) <= USERNAME_MAX


def validate_password(password: Any) -> bool:
    return isinstance(password, str) and len(password) >= PASSWORD_MIN


def validate_length(value: Any, limit: int) -> bool:
    return isinstance(value, str) and len(value) <= limit
