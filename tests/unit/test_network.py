"""
Unit tests for the network observer.
"""

import asyncio
import json

import pytest

from galleryharvest.harvester.models import MediaType, TypeHint
from galleryharvest.harvester.network import NetworkObserver, urls_from_json
from galleryharvest.harvester.reconciler import AssetReconciler
from galleryharvest.harvester.surface import ResponseLike
from tests.conftest import GALLERY_URL, FakeResponse


@pytest.fixture
def rec() -> AssetReconciler:
    return AssetReconciler(base_url=GALLERY_URL)


@pytest.fixture
def observer(rec) -> NetworkObserver:
    return NetworkObserver(rec)


def feed(observer: NetworkObserver, *responses: FakeResponse) -> None:
    async def _run():
        for r in responses:
            await observer.handle_response(r)
    asyncio.run(_run())


class TestUrlsFromJson:
    """Tests for urls_from_json function."""

    def test_nested_values(self, sample_feed_json):
        """Test that URLs are found at any depth, in document order."""
        assert urls_from_json(json.dumps(sample_feed_json)) == [
            "https://cdn.cosmos.so/abc-123?format=webp",
            "https://image.mux.com/pb42/thumbnail.png?time=1",
            "https://stream.mux.com/pb42/medium.mp4",
            "https://www.cosmos.so/api/avatar/u1",
        ]

    def test_urls_inside_text_values(self):
        """Test that URLs embedded in longer strings are found."""
        body = json.dumps({"html": '<img src="https://cdn.x/a.jpg"> and <img src="https://cdn.x/b.jpg">'})
        assert urls_from_json(body) == ["https://cdn.x/a.jpg", "https://cdn.x/b.jpg"]

    def test_keys_ignored(self):
        """Test that only values are scanned."""
        assert urls_from_json(json.dumps({"https://cdn.x/key.jpg": 1})) == []

    def test_invalid_json_raises(self):
        """Test that a broken body raises."""
        with pytest.raises(json.JSONDecodeError):
            urls_from_json("{not json")


class TestNetworkObserver:
    """Tests for NetworkObserver."""

    def test_fake_response_shape(self):
        """Test that the fake response has the shape the observer relies on."""
        assert isinstance(FakeResponse("https://cdn.cosmos.so/a.jpg"), ResponseLike)

    def test_media_response_by_extension(self, observer, rec):
        """Test that a media response is reported as one observation."""
        feed(observer, FakeResponse("https://cdn.cosmos.so/x/photo.jpg?w=2000", "image/jpeg"))
        assert [r.src for r in rec.records()] == ["https://cdn.cosmos.so/x/photo.jpg"]
        assert observer.urls_reported == 1

    def test_media_response_by_content_type(self, observer):
        """Test that content type hints an extension-less response."""
        obs = asyncio.run(observer.observations_from_response(
            FakeResponse("https://www.cosmos.so/img/abc", "image/webp")
        ))
        assert len(obs) == 1
        assert obs[0].type_hint == TypeHint.IMAGE

    def test_json_feed(self, observer, rec, sample_feed_json):
        """Test that a JSON feed yields images, videos and posters."""
        feed(observer, FakeResponse("https://api.cosmos.so/feed", "application/json; charset=utf-8", sample_feed_json))

        records = {r.type: r for r in rec.records()}
        assert len(rec) == 2
        assert records[MediaType.IMAGE].src == "https://cdn.cosmos.so/abc-123"
        assert records[MediaType.VIDEO].src == "https://stream.mux.com/pb42/medium.mp4"
        assert records[MediaType.VIDEO].poster == "https://image.mux.com/pb42/thumbnail.png"
        assert not records[MediaType.IMAGE].positioned

    def test_other_responses_ignored(self, observer, rec):
        """Test that HTML, scripts and styles contribute nothing."""
        feed(
            observer,
            FakeResponse(GALLERY_URL, "text/html", "<html>https://cdn.x/a.jpg</html>"),
            FakeResponse("https://www.cosmos.so/app.js", "application/javascript"),
        )
        assert len(rec) == 0
        assert observer.responses_seen == 2
        assert observer.failures == 0

    def test_unreadable_body_swallowed(self, observer):
        """Test that a body that cannot be read is skipped."""
        feed(observer, FakeResponse("https://api.cosmos.so/feed", "application/json", fail=True))
        assert observer.failures == 1

    def test_invalid_json_swallowed(self, observer):
        """Test that an invalid JSON body is skipped."""
        feed(observer, FakeResponse("https://api.cosmos.so/feed", "application/json", "{oops"))
        assert observer.failures == 1

    def test_failure_isolated(self, observer, rec):
        """Test that one bad response does not affect the next."""
        feed(
            observer,
            FakeResponse("https://api.cosmos.so/feed?page=1", "application/json", "{oops"),
            FakeResponse("https://api.cosmos.so/feed?page=2", "application/json", {"u": "https://cdn.x/a.jpg"}),
        )
        assert observer.failures == 1
        assert [r.src for r in rec.records()] == ["https://cdn.x/a.jpg"]

    def test_missing_headers(self, observer):
        """Test responses without headers."""
        resp = FakeResponse("https://cdn.x/a.png")
        resp.headers = None
        obs = asyncio.run(observer.observations_from_response(resp))
        assert [o.src for o in obs] == ["https://cdn.x/a.png"]
