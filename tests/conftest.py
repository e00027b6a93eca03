"""Pytest fixtures: the app wired to an in-memory mongomock database."""

import os

os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import main

DOOM = {
    "title": "Doom",
    "platform": "PC",
    "genre": "FPS",
    "year": 1993,
    "rating": 4.8,
    "description": "classic",
}


def make_game(**overrides) -> dict:
    game = dict(DOOM)
    game.update(overrides)
    return game


@pytest.fixture
def db():
    """A fresh in-memory database with the production indexes."""
    mongo = mongomock.MongoClient()
    database_ = mongo["gamevault_test"]
    database.ensure_indexes(database_)
    yield database_
    mongo.close()


@pytest.fixture
def credentials():
    return main.get_credentials()


@pytest.fixture
def client(db):
    main.app.dependency_overrides[main.get_db] = lambda: db
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


class Api:
    """Small helper around TestClient for registering and logging users in."""

    __test__ = False

    def __init__(self, client: TestClient):
        self.client = client

    def register(self, username="alice", email="alice@x.com", password="secret1"):
        return self.client.post(
            "/api/auth/register",
            json={"username": username, "email": email, "password": password},
        )

    def login(self, email="alice@x.com", password="secret1"):
        return self.client.post("/api/auth/login", json={"email": email, "password": password})

    def signup(self, username="alice", email="alice@x.com", password="secret1") -> dict:
        """Register and log in; returns the auth headers and the user summary."""
        created = self.register(username, email, password)
        assert created.status_code == 201, created.text
        body = self.login(email, password).json()
        return {"headers": {"Authorization": f"Bearer {body['token']}"}, "user": body["user"]}

    def add_game(self, headers, **overrides) -> dict:
        response = self.client.post("/api/games", json=make_game(**overrides), headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["game"]


@pytest.fixture
def api(client) -> Api:
    return Api(client)


@pytest.fixture
def alice(api) -> dict:
    return api.signup()


@pytest.fixture
def bob(api) -> dict:
    return api.signup("bob", "bob@x.com", "hunter22")
