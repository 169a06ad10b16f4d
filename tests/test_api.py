"""HTTP-level tests for routing, status codes and asset serving."""

import json

import pytest


def _create_pink(client, *names, **fields):
    data = {"id": "pink", "name": "Pink"}
    data.update(fields)
    files = [("images", (name, b"img-" + name.encode(), "image/jpeg")) for name in names]
    return client.post("/api/artists", data={"artistData": json.dumps(data)}, files=files or None)


class TestArtistRoutes:
    def test_create_and_list(self, client):
        response = _create_pink(client, "a.jpg")

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["artist"]["images"] == ["a.jpg"]

        listed = client.get("/api/artists")
        assert listed.status_code == 200
        assert listed.headers["content-type"] == "application/json"
        assert [r["id"] for r in listed.json()] == ["pink"]

    def test_empty_catalog(self, client):
        assert client.get("/api/artists").json() == []

    def test_missing_fields_is_bad_request(self, client):
        response = client.post("/api/artists", data={"artistData": json.dumps({"id": "x"})})
        assert response.status_code == 400
        assert "error" in response.json()

    def test_malformed_json_is_bad_request(self, client):
        response = client.post("/api/artists", data={"artistData": "{not json"})
        assert response.status_code == 400
        assert response.json() == {"error": "artistData must be valid JSON"}

    def test_duplicate_is_conflict(self, client):
        _create_pink(client)
        response = _create_pink(client)
        assert response.status_code == 409
        assert response.json() == {"error": "Artist ID already exists"}
        assert len(client.get("/api/artists").json()) == 1

    def test_update(self, client):
        _create_pink(client, "a.jpg")
        response = client.put(
            "/api/artists/pink",
            data={"artistData": json.dumps({"name": "P!nk"})},
        )
        assert response.status_code == 200
        artist = response.json()["artist"]
        assert artist["name"] == "P!nk"
        assert artist["images"] == ["a.jpg"]

    def test_update_unknown_is_not_found(self, client):
        response = client.put("/api/artists/ghost", data={"artistData": json.dumps({"name": "G"})})
        assert response.status_code == 404
        assert response.json() == {"error": "Artist not found"}

    def test_update_with_deletions(self, client):
        _create_pink(client, "a.jpg", "b.jpg")
        response = client.put(
            "/api/artists/pink",
            data={"artistData": "{}", "deletedImages": json.dumps(["a.jpg"])},
        )
        assert response.json()["artist"]["images"] == ["b.jpg"]
        assert client.get("/assets/artists/pink/a.jpg").status_code == 404

    def test_delete(self, client):
        _create_pink(client, "a.jpg")
        response = client.delete("/api/artists/pink")
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert client.get("/api/artists").json() == []
        assert client.delete("/api/artists/pink").status_code == 404

    def test_delete_single_image(self, client):
        _create_pink(client, "a.jpg", "b.jpg", representativeImages={"home": "a.jpg", "artists": "b.jpg"})

        first = client.delete("/admin/files/artists/pink/a.jpg")
        second = client.delete("/admin/files/artists/pink/a.jpg")

        assert first.status_code == second.status_code == 200
        assert second.json() == {"success": True}
        [artist] = client.get("/api/artists").json()
        assert artist["images"] == ["b.jpg"]
        assert artist["representativeImages"] == {"home": None, "artists": "b.jpg"}


class TestAssets:
    def test_serves_body_with_validators(self, client):
        _create_pink(client, "a.jpg")

        response = client.get("/assets/artists/pink/a.jpg")

        assert response.status_code == 200
        assert response.content == b"img-a.jpg"
        assert response.headers["content-type"] == "image/jpeg"
        assert response.headers["cache-control"] == "public, max-age=31536000"
        assert response.headers["etag"].startswith('"')

    def test_conditional_get(self, client):
        _create_pink(client, "a.jpg")
        etag = client.get("/assets/artists/pink/a.jpg").headers["etag"]

        cached = client.get("/assets/artists/pink/a.jpg", headers={"If-None-Match": etag})
        assert cached.status_code == 304
        assert cached.content == b""

        stale = client.get("/assets/artists/pink/a.jpg", headers={"If-None-Match": '"stale"'})
        assert stale.status_code == 200
        assert stale.content == b"img-a.jpg"
        assert stale.headers["etag"] == etag

    def test_missing_asset(self, client):
        response = client.get("/assets/artists/pink/none.jpg")
        assert response.status_code == 404
        assert response.json() == {"error": "Image not found"}

    def test_default_content_type(self, client):
        service = client.app.state.services["artists"]
        service.blobs.put("artists/pink/raw", b"raw")
        response = client.get("/assets/artists/pink/raw")
        assert response.headers["content-type"] == "image/jpeg"


class TestActorRoutes:
    def _create(self, client, **fields):
        data = {"name": "Tilda", "email": "t@example.com"}
        data.update(fields)
        return client.post(
            "/api/actors",
            data={"actorData": json.dumps(data)},
            files=[("photos", ("head.jpg", b"head", "image/jpeg"))],
        )

    def test_create_and_serve_photo(self, client):
        response = self._create(client)
        assert response.status_code == 201
        actor = response.json()["actor"]
        [photo] = actor["photos"]

        served = client.get(f"/photos/{photo}")
        assert served.status_code == 200
        assert served.content == b"head"

        short = photo.split("/", 1)[1]
        assert client.get(f"/photos/{short}").content == b"head"

    def test_public_and_admin_listings(self, client):
        self._create(client)
        [public] = client.get("/api/actors").json()
        [full] = client.get("/api/actors/admin").json()
        assert "email" not in public
        assert full["email"] == "t@example.com"

    def test_update_photos(self, client):
        actor = self._create(client).json()["actor"]
        [old] = actor["photos"]

        response = client.put(
            f"/api/actors/{actor['id']}",
            data={
                "actorData": json.dumps({"name": "Tilda S."}),
                "deletedPhotos": json.dumps([old.split("/", 1)[1]]),
            },
            files=[("photos", ("side.jpg", b"side", "image/jpeg"))],
        )

        assert response.status_code == 200
        updated = response.json()["actor"]
        [new] = updated["photos"]
        assert new.endswith("-side.jpg")
        assert updated["name"] == "Tilda S."
        assert client.get(f"/photos/{new}").content == b"side"
        assert client.get(f"/photos/{old}").status_code == 404

    def test_delete_photo(self, client):
        actor = self._create(client, main_photo="head.jpg").json()["actor"]
        name = actor["photos"][0].split("/", 1)[1]

        response = client.delete(f"/admin/files/actors/{actor['id']}/{name}")

        assert response.status_code == 200
        [record] = client.get("/api/actors/admin").json()
        assert record["photos"] == []
        assert record["main_photo"] is None


class TestRouting:
    def test_unknown_path(self, client):
        response = client.get("/nowhere")
        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}

    @pytest.mark.parametrize("method,path", [
        ("GET", "/api/artists/pink"),
        ("PATCH", "/api/artists"),
        ("GET", "/admin/files/artists/pink/a.jpg"),
        ("POST", "/assets/artists/pink/a.jpg"),
    ])
    def test_wrong_method(self, client, method, path):
        response = client.request(method, path)
        assert response.status_code == 405
        assert "error" in response.json()

    def test_preflight(self, client):
        response = client.options("/api/artists")
        assert response.status_code == 204
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "GET, POST, PUT, DELETE, OPTIONS"
        assert response.headers["access-control-allow-headers"] == "Content-Type, Authorization"
        assert response.headers["access-control-max-age"] == "86400"

    @pytest.mark.parametrize("path", ["/api/artists", "/nowhere", "/assets/artists/x/y.jpg"])
    def test_cors_headers_everywhere(self, client, path):
        assert client.get(path).headers["access-control-allow-origin"] == "*"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}
