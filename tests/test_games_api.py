"""Game catalog endpoints."""

import pytest
from bson import ObjectId

from conftest import make_game


class TestAddGame:
    def test_scenario_register_login_add_delete(self, api, client):
        assert api.register().status_code == 201
        login = api.login()
        assert login.status_code == 200
        headers = {"Authorization": f"Bearer {login.json()['token']}"}
        alice_id = login.json()["user"]["id"]

        created = client.post("/api/games", json=make_game(), headers=headers)
        assert created.status_code == 201
        game = created.json()["game"]
        assert game["addedBy"] == alice_id
        assert game["addedByUsername"] == "alice"

        assert client.delete(f"/api/games/{game['id']}", headers=headers).status_code == 200
        missing = client.get(f"/api/games/{game['id']}", headers=headers)
        assert missing.status_code == 404
        assert missing.json() == {"success": False, "message": "Game not found"}

    def test_round_trip_preserves_fields(self, api, client, alice):
        payload = make_game(developer="id Software", publisher="GT Interactive",
                            posterUrl="https://example.com/doom.jpg")
        created = client.post("/api/games", json=payload, headers=alice["headers"]).json()["game"]
        fetched = client.get(f"/api/games/{created['id']}", headers=alice["headers"]).json()["game"]
        for key, value in payload.items():
            assert fetched[key] == value
        assert fetched["id"] == created["id"]
        assert fetched["createdAt"]
        assert fetched["updatedAt"]

    def test_missing_required_field(self, client, alice):
        payload = make_game()
        del payload["description"]
        response = client.post("/api/games", json=payload, headers=alice["headers"])
        assert response.status_code == 400
        assert response.json()["message"] == "Please provide all required fields"

    def test_absent_optional_fields_are_not_stored(self, api, db, alice):
        game = api.add_game(alice["headers"], developer="id Software")
        stored = db["games"].find_one({"_id": ObjectId(game["id"])})
        assert stored["developer"] == "id Software"
        assert "publisher" not in stored
        assert "poster_url" not in stored

    def test_zero_rating_is_accepted(self, api, alice):
        game = api.add_game(alice["headers"], rating=0)
        assert game["rating"] == 0

    @pytest.mark.parametrize("overrides, message", [
        ({"year": 1979}, "Year must be between 1980 and 2025"),
        ({"year": 2026}, "Year must be between 1980 and 2025"),
        ({"rating": 5.1}, "Rating must be between 0 and 5"),
        ({"rating": -1}, "Rating must be between 0 and 5"),
        ({"platform": "Dreamcast"}, "Invalid platform"),
        ({"genre": "Rhythm"}, "Invalid genre"),
        ({"title": "x" * 101}, "Title cannot exceed 100 characters"),
        ({"description": "x" * 501}, "Description cannot exceed 500 characters"),
    ])
    def test_invalid_fields_rejected_before_storage(self, client, db, alice, overrides, message):
        response = client.post("/api/games", json=make_game(**overrides), headers=alice["headers"])
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": message}
        assert db["games"].count_documents({}) == 0

    def test_wrong_type_is_a_400(self, client, alice):
        response = client.post("/api/games", json=make_game(year="nineteen"), headers=alice["headers"])
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_requires_auth(self, client):
        assert client.post("/api/games", json=make_game()).status_code == 401


class TestBulk:
    def test_bulk_insert(self, client, alice):
        payload = {"games": [make_game(title="Doom"), make_game(title="Quake", year=1996)]}
        response = client.post("/api/games/bulk", json=payload, headers=alice["headers"])
        assert response.status_code == 201
        body = response.json()
        assert body["count"] == 2
        assert [g["title"] for g in body["games"]] == ["Doom", "Quake"]
        assert all(g["addedBy"] == alice["user"]["id"] for g in body["games"])

    def test_invalid_element_fails_whole_request(self, client, db, alice):
        payload = {"games": [make_game(title="Doom"), make_game(title="Quake", rating=9)]}
        response = client.post("/api/games/bulk", json=payload, headers=alice["headers"])
        assert response.status_code == 400
        assert response.json()["message"] == "Rating must be between 0 and 5 for game: Quake"
        assert db["games"].count_documents({}) == 0

    def test_first_invalid_element_is_reported(self, client, alice):
        payload = {"games": [make_game(title="A", year=1970), make_game(title="B", genre="Nope")]}
        response = client.post("/api/games/bulk", json=payload, headers=alice["headers"])
        assert response.json()["message"] == "Year must be between 1980 and 2025 for game: A"

    @pytest.mark.parametrize("payload", [{}, {"games": []}])
    def test_empty_input(self, client, alice, payload):
        response = client.post("/api/games/bulk", json=payload, headers=alice["headers"])
        assert response.status_code == 400
        assert response.json()["message"] == 'Please provide a non-empty "games" array'


class TestUpdate:
    def test_partial_update(self, api, client, alice):
        game = api.add_game(alice["headers"], developer="id Software")
        response = client.put(f"/api/games/{game['id']}", json={"rating": 4.9},
                              headers=alice["headers"])
        assert response.status_code == 200
        updated = response.json()["game"]
        assert updated["rating"] == 4.9
        assert updated["title"] == "Doom"
        assert updated["developer"] == "id Software"
        assert updated["addedBy"] == alice["user"]["id"]

    def test_rating_can_be_set_to_zero(self, api, client, alice):
        game = api.add_game(alice["headers"])
        response = client.put(f"/api/games/{game['id']}", json={"rating": 0}, headers=alice["headers"])
        assert response.json()["game"]["rating"] == 0

    def test_optional_field_can_be_cleared(self, api, client, alice):
        game = api.add_game(alice["headers"], posterUrl="https://example.com/p.jpg")
        response = client.put(f"/api/games/{game['id']}", json={"posterUrl": None},
                              headers=alice["headers"])
        assert "posterUrl" not in response.json()["game"]

    def test_cleared_field_matches_never_set_field(self, api, client, db, alice):
        game = api.add_game(alice["headers"], developer="id Software")
        client.put(f"/api/games/{game['id']}", json={"developer": None}, headers=alice["headers"])
        stored = db["games"].find_one({"_id": ObjectId(game["id"])})
        assert "developer" not in stored
        assert "publisher" not in stored

    def test_required_field_cannot_be_blanked(self, api, client, alice):
        game = api.add_game(alice["headers"])
        response = client.put(f"/api/games/{game['id']}", json={"title": "  "}, headers=alice["headers"])
        assert response.status_code == 400

    def test_invalid_value(self, api, client, db, alice):
        game = api.add_game(alice["headers"])
        response = client.put(f"/api/games/{game['id']}", json={"year": 1979}, headers=alice["headers"])
        assert response.status_code == 400
        assert db["games"].find_one({"_id": ObjectId(game["id"])})["year"] == 1993

    def test_unknown_game(self, client, alice):
        response = client.put(f"/api/games/{ObjectId()}", json={"rating": 3}, headers=alice["headers"])
        assert response.status_code == 404

    def test_any_user_may_update(self, api, client, alice, bob):
        game = api.add_game(alice["headers"])
        response = client.put(f"/api/games/{game['id']}", json={"title": "Doom II"}, headers=bob["headers"])
        assert response.status_code == 200
        assert response.json()["game"]["addedBy"] == alice["user"]["id"]


class TestDelete:
    def test_delete_cascades_to_every_user(self, api, client, db, alice, bob):
        game = api.add_game(alice["headers"])
        keep = api.add_game(alice["headers"], title="Quake")
        client.post("/api/games/user/collection", json={"gameId": game["id"]}, headers=alice["headers"])
        client.post("/api/games/user/collection", json={"gameId": keep["id"]}, headers=alice["headers"])
        client.post("/api/games/user/wishlist", json={"gameId": game["id"]}, headers=bob["headers"])

        response = client.delete(f"/api/games/{game['id']}", headers=alice["headers"])
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Game deleted successfully"}

        oid = ObjectId(game["id"])
        for user in db["users"].find():
            assert oid not in user["owned_games"]
            assert oid not in user["wishlist"]
        owned = db["users"].find_one({"username": "alice"})["owned_games"]
        assert owned == [ObjectId(keep["id"])]

    def test_delete_unknown(self, client, alice):
        assert client.delete(f"/api/games/{ObjectId()}", headers=alice["headers"]).status_code == 404

    def test_malformed_id(self, client, alice):
        response = client.get("/api/games/not-an-id", headers=alice["headers"])
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid game id"


class TestQueries:
    def test_list_is_owner_scoped_and_newest_first(self, api, client, alice, bob):
        api.add_game(alice["headers"], title="First")
        api.add_game(alice["headers"], title="Second")
        api.add_game(bob["headers"], title="Bob's")
        body = client.get("/api/games", headers=alice["headers"]).json()
        assert body["count"] == 2
        assert [g["title"] for g in body["games"]] == ["Second", "First"]

    def test_list_all(self, api, client, alice, bob):
        api.add_game(alice["headers"], title="First")
        api.add_game(bob["headers"], title="Bob's")
        body = client.get("/api/games/all", headers=alice["headers"]).json()
        assert [g["title"] for g in body["games"]] == ["Bob's", "First"]
        assert body["games"][0]["addedByUsername"] == "bob"

    def test_filter_by_platform_and_genre(self, api, client, alice):
        api.add_game(alice["headers"], title="Doom")
        api.add_game(alice["headers"], title="Zelda", platform="Nintendo Switch", genre="Adventure")
        by_platform = client.get("/api/games/platform/Nintendo Switch", headers=alice["headers"]).json()
        assert [g["title"] for g in by_platform["games"]] == ["Zelda"]
        by_genre = client.get("/api/games/genre/FPS", headers=alice["headers"]).json()
        assert [g["title"] for g in by_genre["games"]] == ["Doom"]
        unknown = client.get("/api/games/genre/Rhythm", headers=alice["headers"]).json()
        assert unknown["count"] == 0

    def test_top_rated(self, api, client, alice):
        api.add_game(alice["headers"], title="Low", rating=4.4)
        api.add_game(alice["headers"], title="Edge", rating=4.5)
        api.add_game(alice["headers"], title="Best", rating=5.0)
        api.add_game(alice["headers"], title="Edge newer", rating=4.5)
        body = client.get("/api/games/top-rated", headers=alice["headers"]).json()
        assert [g["title"] for g in body["games"]] == ["Best", "Edge newer", "Edge"]
        assert all(g["rating"] >= 4.5 for g in body["games"])
