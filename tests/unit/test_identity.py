"""
Unit tests for identity key resolution.
"""

from galleryharvest.harvester.identity import (
    key_priority,
    normalize_stable_id,
    playback_key,
    resolve_identity,
    stable_key,
    strongest_key,
    url_key,
)
from galleryharvest.harvester.models import MediaType
from galleryharvest.harvester.url_utils import CanonicalUrl, HostProfile


class TestResolveIdentity:
    """Tests for resolve_identity function."""

    def test_plain_image_uses_url_key(self):
        """Test that an image without an id is keyed by type and URL."""
        ident = resolve_identity(CanonicalUrl("https://cdn.x/a.jpg", MediaType.IMAGE))
        assert ident.key == "image:url:https://cdn.x/a.jpg"
        assert ident.aliases == ()
        assert ident.playback_id is None

    def test_stable_id_wins(self):
        """Test that an element id is the primary key."""
        ident = resolve_identity(CanonicalUrl("https://cdn.x/a.jpg", MediaType.IMAGE), "tile-1")
        assert ident.key == "id:tile-1"
        assert ident.aliases == ("image:url:https://cdn.x/a.jpg",)

    def test_provider_video_keyed_by_playback_id(self):
        """Test that streamed renditions share one key."""
        low = resolve_identity(CanonicalUrl("https://stream.mux.com/pb1/low.mp4", MediaType.VIDEO))
        high = resolve_identity(CanonicalUrl("https://stream.mux.com/pb1/high.mp4", MediaType.VIDEO))
        assert low.key == high.key == "video:mux:pb1"
        assert low.playback_id == "pb1"
        assert low.aliases != high.aliases

    def test_stable_id_and_playback_id(self):
        """Test that a streamed video with an element id answers to all three keys."""
        ident = resolve_identity(CanonicalUrl("https://stream.mux.com/pb1/low.mp4", MediaType.VIDEO), "tile-9")
        assert ident.all_keys == (
            "id:tile-9",
            "video:mux:pb1",
            "video:url:https://stream.mux.com/pb1/low.mp4",
        )

    def test_self_hosted_video_has_no_playback_id(self):
        """Test that gallery-hosted files fall back to the URL key."""
        ident = resolve_identity(CanonicalUrl("https://cdn.cosmos.so/v/clip.mp4", MediaType.VIDEO))
        assert ident.key == "video:url:https://cdn.cosmos.so/v/clip.mp4"
        assert ident.playback_id is None

    def test_custom_provider(self):
        """Test that the profile decides the provider host."""
        profile = HostProfile(stream_host="video.example.net")
        ident = resolve_identity(CanonicalUrl("https://video.example.net/xyz/low.mp4", MediaType.VIDEO), profile=profile)
        assert ident.key == "video:mux:xyz"


class TestKeys:
    """Tests for key helpers."""

    def test_key_formats(self):
        """Test key string formats."""
        assert stable_key("e1") == "id:e1"
        assert playback_key("pb1") == "video:mux:pb1"
        assert url_key(MediaType.VIDEO, "https://x/v.mp4") == "video:url:https://x/v.mp4"
        assert url_key("image", "https://x/a.jpg") == "image:url:https://x/a.jpg"

    def test_priority_order(self):
        """Test that id beats playback id beats URL."""
        assert key_priority("id:a") < key_priority("video:mux:a") < key_priority("image:url:a")

    def test_strongest_key(self):
        """Test strongest key selection is deterministic."""
        keys = {"image:url:https://x/a.jpg", "video:mux:pb1", "id:zz", "id:aa"}
        assert strongest_key(keys) == "id:aa"
        assert strongest_key(["video:url:b", "video:mux:pb1"]) == "video:mux:pb1"


class TestNormalizeStableId:
    """Tests for normalize_stable_id function."""

    def test_permalink_stripped(self):
        """Test that permalinks lose tracking parameters."""
        assert normalize_stable_id("/e/123?ref=feed", "https://www.cosmos.so/rlphoto") == "https://www.cosmos.so/e/123"

    def test_absolute_permalink(self):
        """Test absolute permalinks."""
        assert normalize_stable_id("https://www.cosmos.so/e/123#x") == "https://www.cosmos.so/e/123"

    def test_plain_id_trimmed(self):
        """Test that plain ids are only trimmed."""
        assert normalize_stable_id("  tile-42 ") == "tile-42"

    def test_empty(self):
        """Test empty values."""
        assert normalize_stable_id(None) is None
        assert normalize_stable_id("   ") is None
