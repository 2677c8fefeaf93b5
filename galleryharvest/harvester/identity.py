"""
Identity keys for de-duplicating assets.

An asset can be seen as a DOM element with a permalink, as a provider
stream in one of several renditions, or as a bare URL in a JSON payload.
Each sighting gets a primary key (most stable signal available) plus the
weaker keys it also answers to, so the reconciler can join sightings that
came from different channels.
"""

from typing import NamedTuple, Optional, Tuple

from galleryharvest.harvester.models import MediaType
from galleryharvest.harvester.url_utils import (
    CanonicalUrl,
    DEFAULT_PROFILE,
    HostProfile,
    playback_id_from_url,
    strip_url,
)


ID_PREFIX = "id:"
PLAYBACK_PREFIX = "video:mux:"


class Identity(NamedTuple):
    key: str
    aliases: Tuple[str, ...]
    playback_id: Optional[str] = None

    @property
    def all_keys(self) -> Tuple[str, ...]:
        return (self.key,) + self.aliases


def stable_key(stable_id: str) -> str:
    return f"{ID_PREFIX}{stable_id}"


def playback_key(playback_id: str) -> str:
    return f"{PLAYBACK_PREFIX}{playback_id}"


def url_key(media_type: MediaType, src: str) -> str:
    return f"{MediaType(media_type).value}:url:{src}"


def key_priority(key: str) -> int:
    """Lower is stronger: element id, then playback id, then URL."""
    if key.startswith(ID_PREFIX):
        return 0
    if key.startswith(PLAYBACK_PREFIX):
        return 1
    return 2


def strongest_key(keys) -> str:
    """Deterministic pick of the key a record is filed under."""
    return min(keys, key=lambda k: (key_priority(k), k))


def normalize_stable_id(raw: Optional[str], base: Optional[str] = None) -> Optional[str]:
    """
    Clean an element id or permalink.

    Permalinks are reduced like any other URL so that tracking parameters
    do not split one gallery item into two.

    Example:
        >>> normalize_stable_id("/e/123?ref=feed", "https://www.cosmos.so/rlphoto")
        'https://www.cosmos.so/e/123'
        >>> normalize_stable_id("  tile-42 ")
        'tile-42'
    """
    if raw is None:
        return None
    s = str(raw).strip()
    if not s:
        return None
    if s.startswith(("http://", "https://", "/")):
        return strip_url(s, base) or s
    return s


def resolve_identity(
    canon: CanonicalUrl,
    stable_id: Optional[str] = None,
    profile: HostProfile = DEFAULT_PROFILE,
) -> Identity:
    """
    Derive the identity key for a canonicalized asset.

    Priority, first match wins:
      1. explicit stable id / permalink of the containing element
      2. provider playback id for streamed videos
      3. type + canonical URL

    Args:
        canon: Canonicalized URL
        stable_id: Normalized element id or permalink, if any
        profile: Gallery host profile

    Returns:
        Identity with the primary key and the weaker keys it also answers to

    Example:
        >>> c = CanonicalUrl("https://stream.mux.com/abc/low.mp4", MediaType.VIDEO)
        >>> resolve_identity(c).key
        'video:mux:abc'
    """
    keys = []
    if stable_id:
        keys.append(stable_key(stable_id))

    pid = None
    if canon.media_type == MediaType.VIDEO:
        pid = playback_id_from_url(canon.src, profile)
        if pid:
            keys.append(playback_key(pid))

    keys.append(url_key(canon.media_type, canon.src))
    return Identity(key=keys[0], aliases=tuple(keys[1:]), playback_id=pid)
