"""
test_media_places.py — Tests for GET /api/v1/media/{path} and
GET /api/v1/places/search.
"""

import httpx
import pytest

from festmap.services.engine import get_media_store, get_place_search
from festmap.services.place_search import PlaceSearchAdapter


@pytest.fixture()
async def media_client(client, media_store):
    from festmap.main import app

    await media_store.upload("acl_demo/1760119200000-ab12cd34ef56.jpg", b"jpeg-bytes", "image/jpeg")
    app.dependency_overrides[get_media_store] = lambda: media_store
    yield client


class TestMedia:
    async def test_serves_stored_object(self, media_client):
        r = await media_client.get("/api/v1/media/acl_demo/1760119200000-ab12cd34ef56.jpg")

        assert r.status_code == 200
        assert r.content == b"jpeg-bytes"
        assert r.headers["content-type"] == "image/jpeg"
        assert "immutable" in r.headers["cache-control"]

    async def test_missing_object_404(self, media_client):
        r = await media_client.get("/api/v1/media/acl_demo/missing.jpg")
        assert r.status_code == 404

    async def test_unavailable_without_database(self, client):
        r = await client.get("/api/v1/media/acl_demo/1.jpg")
        assert r.status_code == 503


def _serpapi(request):
    return httpx.Response(
        200,
        json={
            "local_results": [
                {
                    "title": "Zilker Park",
                    "address": "2100 Barton Springs Rd",
                    "gps_coordinates": {"latitude": 30.2669, "longitude": -97.7729},
                }
            ]
        },
    )


@pytest.fixture()
async def places_client(client):
    from festmap.main import app

    adapter = PlaceSearchAdapter(api_key="test-key", transport=httpx.MockTransport(_serpapi))
    app.dependency_overrides[get_place_search] = lambda: adapter
    yield client


class TestPlaces:
    async def test_search_returns_places(self, places_client):
        r = await places_client.get("/api/v1/places/search?q=zilker&lat=30.2672&lng=-97.7431")

        assert r.status_code == 200
        assert r.json() == [
            {"name": "Zilker Park", "address": "2100 Barton Springs Rd", "lat": 30.2669, "lng": -97.7729}
        ]

    async def test_search_without_bias(self, places_client):
        r = await places_client.get("/api/v1/places/search?q=zilker")
        assert r.status_code == 200
        assert len(r.json()) == 1

    async def test_query_required(self, places_client):
        r = await places_client.get("/api/v1/places/search")
        assert r.status_code == 422

    async def test_lat_without_lng_rejected(self, places_client):
        r = await places_client.get("/api/v1/places/search?q=zilker&lat=30.2")
        assert r.status_code == 422

    async def test_disabled_search_returns_empty_list(self, client):
        from festmap.main import app

        app.dependency_overrides[get_place_search] = lambda: PlaceSearchAdapter(api_key="")

        r = await client.get("/api/v1/places/search?q=zilker")

        assert r.status_code == 200
        assert r.json() == []

    async def test_malformed_serpapi_items_return_200(self, client):
        from festmap.main import app

        def handler(request):
            return httpx.Response(
                200,
                json={"local_results": ["junk", {"title": "x", "gps_coordinates": {"latitude": "?", "longitude": "?"}}]},
            )

        adapter = PlaceSearchAdapter(api_key="test-key", transport=httpx.MockTransport(handler))
        app.dependency_overrides[get_place_search] = lambda: adapter

        r = await client.get("/api/v1/places/search?q=zilker")

        assert r.status_code == 200
        assert r.json() == []
