"""
URL canonicalization and classification for harvested media.

This module turns raw URLs seen in the DOM or on the wire into a
comparable canonical form and decides whether they are images, videos,
poster-only thumbnails, or junk.
"""

import re
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Tuple, Union
from urllib.parse import urljoin, urlsplit, urlunsplit

from galleryharvest.harvester.models import MediaType, TypeHint


IMAGE_EXTS = frozenset({"jpg", "jpeg", "png", "webp", "gif", "avif", "heic"})
VIDEO_EXTS = frozenset({"mp4", "webm", "m4v", "mov"})
MANIFEST_EXTS = frozenset({"m3u8", "mpd"})

# Substrings of chrome we never want: avatars, app bundles, favicons, avatar API
EXCLUDED_FRAGMENTS = (
    "default-avatars",
    "/_next/",
    "favicon",
    "cosmos.so/api/avatar",
)

# Provider static renditions, worst to best
QUALITY_TIERS = ("low", "medium", "high")

_EXT_RE = re.compile(r"\.([a-z0-9]{2,5})$", re.I)
_THUMBNAIL_RE = re.compile(r"/thumbnail\.(png|jpe?g|webp)$", re.I)
URL_IN_TEXT_RE = re.compile(r"https?://[^\s\"'\\)<>]+")


@dataclass(frozen=True)
class HostProfile:
    """
    Hosts that matter when classifying a gallery's media.

    Defaults describe a Cosmos gallery streaming video through Mux.
    """
    gallery_domain: str = "cosmos.so"
    image_cdn_hosts: Tuple[str, ...] = ("cdn.cosmos.so", "files.cosmos.so")
    self_hosted_video_hosts: Tuple[str, ...] = ("cdn.cosmos.so", "files.cosmos.so")
    stream_host: str = "stream.mux.com"
    thumbnail_host: str = "image.mux.com"
    trusted_images_only: bool = False

    def on_gallery_domain(self, host: str) -> bool:
        h = (host or "").lower()
        return h == self.gallery_domain or h.endswith("." + self.gallery_domain)


DEFAULT_PROFILE = HostProfile()


class CanonicalUrl(NamedTuple):
    """Result of canonicalize(): the normal form plus its classification."""
    src: str
    media_type: MediaType
    poster_only: bool = False


def domain_of(url: str) -> str:
    """
    Extract lower-cased host from URL.

    Example:
        >>> domain_of("https://www.Cosmos.so/rlphoto/swim")
        'www.cosmos.so'
    """
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def strip_url(raw: Optional[str], base: Optional[str] = None) -> Optional[str]:
    """
    Resolve a URL against base and reduce it to scheme, host and path.

    Query string and fragment are dropped, scheme and host are lower-cased,
    the path is kept verbatim.

    Args:
        raw: URL as seen in the page (may be relative)
        base: Base URL for resolving relative references

    Returns:
        Stripped absolute http(s) URL, or None if unusable

    Example:
        >>> strip_url("/a.jpg?v=1#x", "https://CDN.x/gallery")
        'https://cdn.x/a.jpg'
        >>> strip_url("data:image/png;base64,AAAA") is None
        True
    """
    if not raw or not isinstance(raw, str):
        return None
    raw = raw.strip()
    if not raw or raw[:5].lower() == "data:":
        return None
    try:
        parts = urlsplit(urljoin(base, raw) if base else raw)
    except ValueError:
        return None
    scheme = parts.scheme.lower()
    if scheme not in ("http", "https") or not parts.netloc:
        return None
    return urlunsplit((scheme, parts.netloc.lower(), parts.path, "", ""))


def is_excluded(src: str) -> bool:
    return any(frag in src for frag in EXCLUDED_FRAGMENTS)


def _extension(path: str) -> Optional[str]:
    last = [s for s in (path or "").split("/") if s]
    if not last:
        return None
    m = _EXT_RE.search(last[-1])
    return m.group(1).lower() if m else None


def _host(src: str) -> str:
    return (urlsplit(src).hostname or "").lower()


def _segments(src: str) -> List[str]:
    return [s for s in urlsplit(src).path.split("/") if s]


def media_hint(url: str) -> Optional[TypeHint]:
    """
    Guess the media type from the URL's file extension alone.

    Returns:
        TypeHint for media extensions (manifests count as video), else None
    """
    try:
        ext = _extension(urlsplit(url).path)
    except ValueError:
        return None
    if ext in IMAGE_EXTS:
        return TypeHint.IMAGE
    if ext in VIDEO_EXTS or ext in MANIFEST_EXTS:
        return TypeHint.VIDEO
    return None


def is_thumbnail_url(src: str, profile: HostProfile = DEFAULT_PROFILE) -> bool:
    """True for the provider's fixed-name still frame (image.mux.com/<id>/thumbnail.png)."""
    try:
        parts = urlsplit(src)
    except ValueError:
        return False
    return (parts.hostname or "").lower() == profile.thumbnail_host and bool(_THUMBNAIL_RE.search(parts.path))


def playback_id_from_url(src: str, profile: HostProfile = DEFAULT_PROFILE) -> Optional[str]:
    """
    Extract the streaming provider's playback id.

    The id is the first path segment on the stream and thumbnail hosts,
    e.g. stream.mux.com/<id>/low.mp4 and image.mux.com/<id>/thumbnail.png.

    Returns:
        Playback id, or None for any other URL
    """
    try:
        host = _host(src)
        segs = _segments(src)
    except ValueError:
        return None
    if host not in (profile.stream_host, profile.thumbnail_host):
        return None
    if len(segs) < 2:
        return None
    return segs[0]


def quality_tier(src: str, profile: HostProfile = DEFAULT_PROFILE) -> int:
    """
    Rank a provider rendition: 0 unknown, then 1..len(QUALITY_TIERS).

    Example:
        >>> quality_tier("https://stream.mux.com/abc/low.mp4")
        1
        >>> quality_tier("https://stream.mux.com/abc/high.mp4")
        3
    """
    if _host(src) != profile.stream_host:
        return 0
    segs = _segments(src)
    if len(segs) < 2:
        return 0
    stem = segs[-1].rsplit(".", 1)[0].lower()
    if stem in QUALITY_TIERS:
        return QUALITY_TIERS.index(stem) + 1
    return 0


def upgrade_to_top_tier(src: str, profile: HostProfile = DEFAULT_PROFILE) -> str:
    """
    Rewrite a lower provider rendition to the top tier by path substitution.

    Example:
        >>> upgrade_to_top_tier("https://stream.mux.com/abc/low.mp4")
        'https://stream.mux.com/abc/high.mp4'
    """
    tier = quality_tier(src, profile)
    if tier == 0 or tier == len(QUALITY_TIERS):
        return src
    head, _, last = src.rpartition("/")
    ext = last.rsplit(".", 1)[1] if "." in last else "mp4"
    return f"{head}/{QUALITY_TIERS[-1]}.{ext}"


def is_provider_video(src: str, profile: HostProfile = DEFAULT_PROFILE) -> bool:
    return _host(src) == profile.stream_host and playback_id_from_url(src, profile) is not None


def is_self_hosted_video(src: str, profile: HostProfile = DEFAULT_PROFILE) -> bool:
    """A video file served from the gallery's own storage rather than the stream provider."""
    return _host(src) in profile.self_hosted_video_hosts and _extension(urlsplit(src).path) in VIDEO_EXTS


def canonicalize(
    raw: Union[str, CanonicalUrl, None],
    base: Optional[str] = None,
    hint: Union[TypeHint, MediaType, str] = TypeHint.UNKNOWN,
    profile: HostProfile = DEFAULT_PROFILE,
) -> Optional[CanonicalUrl]:
    """
    Normalize and classify a raw media URL.

    Rules, in order:
      1. unusable, inline data, or excluded chrome -> None
      2. strip query/fragment, lower-case host
      3. classify by extension; provider thumbnails are poster-only images
      4. extension-less URLs on the gallery's image hosts are images
      5. streaming manifests are always rejected

    Pure: the same (raw, base, hint, profile) always yields the same result.
    A CanonicalUrl passed back in keeps its media type as the hint, so
    canonicalize(canonicalize(u)) == canonicalize(u) even for extension-less
    gallery images that were only accepted because of an image hint.

    Args:
        raw: URL as observed, or an earlier result
        base: Base URL for relative references
        hint: What the discovery channel thinks this is
        profile: Gallery host profile

    Returns:
        CanonicalUrl, or None if the URL is not a harvestable asset

    Example:
        >>> canonicalize("https://cdn.x/a.jpg?v=2")
        CanonicalUrl(src='https://cdn.x/a.jpg', media_type=<MediaType.IMAGE: 'image'>, poster_only=False)
    """
    if isinstance(raw, CanonicalUrl):
        if getattr(hint, "value", hint) == TypeHint.UNKNOWN.value:
            hint = raw.media_type
        raw = raw.src

    src = strip_url(raw, base)
    if src is None or is_excluded(src):
        return None

    hint_value = getattr(hint, "value", hint)
    host = _host(src)
    ext = _extension(urlsplit(src).path)

    if ext in MANIFEST_EXTS:
        return None

    if ext in IMAGE_EXTS:
        if is_thumbnail_url(src, profile):
            return CanonicalUrl(src, MediaType.IMAGE, poster_only=True)
        if profile.trusted_images_only and not profile.on_gallery_domain(host):
            return None
        return CanonicalUrl(src, MediaType.IMAGE)

    if ext in VIDEO_EXTS:
        return CanonicalUrl(src, MediaType.VIDEO)

    if ext is not None or hint_value == TypeHint.VIDEO.value:
        return None

    # Providers serve format-negotiated images without an extension
    if host in profile.image_cdn_hosts:
        return CanonicalUrl(src, MediaType.IMAGE)
    if hint_value == TypeHint.IMAGE.value and profile.on_gallery_domain(host):
        return CanonicalUrl(src, MediaType.IMAGE)
    return None


def extract_urls(text: str) -> List[str]:
    """
    Find absolute http(s) URLs inside free text, in order, without duplicates.

    JSON-escaped slashes are unescaped first.

    Example:
        >>> extract_urls('see https://cdn.x/a.jpg and https://cdn.x/a.jpg')
        ['https://cdn.x/a.jpg']
    """
    if not text:
        return []
    text = text.replace("\\/", "/")
    seen = set()
    out: List[str] = []
    for u in URL_IN_TEXT_RE.findall(text):
        if u not in seen:
            seen.add(u)
            out.append(u)
    return out
