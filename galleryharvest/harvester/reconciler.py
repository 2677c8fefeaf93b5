"""
Reconciled collection of harvested assets.

AssetReconciler owns the single keyed store for a run. Both discovery
channels feed it through merge(); nothing else mutates it. Every merge
is monotonic (values only grow, positions only move up/left, renditions
only upgrade) and conflicts are settled by fixed ranks, so the final
collection does not depend on the order observations arrive in.

Sightings are joined through shared identity keys, but a weaker key never
overrides a stronger one: two records holding different element ids, or
different playback ids with no element id in common, stay apart even when
they share a URL (a play-icon overlay, a common placeholder).
"""

import copy
import itertools
from collections import Counter
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set, Tuple

from galleryharvest.core.logging import get_logger
from galleryharvest.harvester.identity import (
    ID_PREFIX,
    PLAYBACK_PREFIX,
    normalize_stable_id,
    playback_key,
    resolve_identity,
    strongest_key,
)
from galleryharvest.harvester.models import Asset, MediaType, Observation, TypeHint
from galleryharvest.harvester.url_utils import (
    DEFAULT_PROFILE,
    HostProfile,
    canonicalize,
    is_provider_video,
    is_self_hosted_video,
    is_thumbnail_url,
    playback_id_from_url,
    quality_tier,
    upgrade_to_top_tier,
)

logger = get_logger(__name__)


class MergeOutcome(str, Enum):
    REJECTED = "rejected"
    POSTER_ATTACHED = "poster_attached"
    POSTER_DEFERRED = "poster_deferred"
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass
class AssetRecord:
    """Best-known state of one identity. Internal to the reconciler and finalizer."""
    key: str
    type: MediaType
    src: str
    width: int = 0
    height: int = 0
    poster: Optional[str] = None
    position: Optional[Tuple[float, float]] = None
    seq: int = 0
    playback_id: Optional[str] = None
    keys: Set[str] = field(default_factory=set)
    # width*height reported together with the current src
    src_area: int = 0

    @property
    def positioned(self) -> bool:
        """Seen laid out in the DOM at least once."""
        return self.position is not None

    def to_asset(self) -> Asset:
        return Asset(
            type=self.type,
            src=self.src,
            width=self.width,
            height=self.height,
            poster=self.poster if self.type == MediaType.VIDEO else None,
        )


def _better_poster(current: Optional[str], candidate: Optional[str]) -> Optional[str]:
    """An element's own poster beats a provider thumbnail; ties go to the smaller URL."""
    if not candidate:
        return current
    if not current:
        return candidate
    return min(current, candidate, key=lambda u: (is_thumbnail_url(u), u))


def _with_prefix(keys: Iterable[str], prefix: str) -> Set[str]:
    return {k for k in keys if k.startswith(prefix)}


def keys_compatible(a: Iterable[str], b: Iterable[str]) -> bool:
    """
    Whether two key sets may describe the same asset.

    A shared element id always links. Otherwise two distinct element ids
    conflict, and so do two disjoint sets of playback ids.

    Example:
        >>> keys_compatible({"id:/e/1", "image:url:x"}, {"id:/e/2", "image:url:x"})
        False
        >>> keys_compatible({"image:url:x"}, {"id:/e/2", "image:url:x"})
        True
    """
    ids_a, ids_b = _with_prefix(a, ID_PREFIX), _with_prefix(b, ID_PREFIX)
    if ids_a & ids_b:
        return True
    if ids_a and ids_b:
        return False
    pids_a, pids_b = _with_prefix(a, PLAYBACK_PREFIX), _with_prefix(b, PLAYBACK_PREFIX)
    return not (pids_a and pids_b and pids_a.isdisjoint(pids_b))


def _min_position(a: Optional[Tuple[float, float]], b: Optional[Tuple[float, float]]):
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


class AssetReconciler:
    """
    Merge observations into one de-duplicated, keyed collection.

    Usage:
        >>> rec = AssetReconciler(base_url="https://www.cosmos.so/rlphoto/swim")
        >>> rec.merge(Observation.from_network("https://cdn.x/a.jpg?v=1"))
        <MergeOutcome.CREATED: 'created'>
        >>> [r.src for r in rec.records()]
        ['https://cdn.x/a.jpg']
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        profile: HostProfile = DEFAULT_PROFILE,
        force_top_tier: bool = False,
        trusted_images_only: Optional[bool] = None,
    ):
        if trusted_images_only is not None:
            profile = replace(profile, trusted_images_only=trusted_images_only)
        self._base_url = base_url
        self._profile = profile
        self._force_top_tier = force_top_tier

        # handle -> record; a key may be held by several records that conflict elsewhere
        self._records: Dict[int, AssetRecord] = {}
        self._aliases: Dict[str, Set[int]] = {}
        # best provider thumbnail per playback id, kept for videos still to come
        self._thumbnails: Dict[str, str] = {}
        self._provider_video_seen = False
        self._seq = itertools.count()
        self._handles = itertools.count()
        self._stats: Counter = Counter()

    def __len__(self) -> int:
        return len(self._records)

    @property
    def created_total(self) -> int:
        """Identities ever created, including ones later joined into another record."""
        return self._stats[MergeOutcome.CREATED.value]

    @property
    def provider_video_seen(self) -> bool:
        return self._provider_video_seen

    @property
    def pending_posters(self) -> Dict[str, str]:
        """Provider thumbnails whose video has not been seen (yet)."""
        return {
            pid: url for pid, url in self._thumbnails.items()
            if not self._aliases.get(playback_key(pid))
        }

    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    def merge(self, obs: Observation) -> MergeOutcome:
        """
        Fold one observation into the collection.

        Rejected URLs are dropped silently. Provider thumbnails become the
        poster of the matching video (now or when it arrives). Everything
        else is joined with every record it shares an identity key with,
        unless their stronger keys (element id, playback id) disagree.

        Args:
            obs: Raw observation from either discovery channel

        Returns:
            What the merge did
        """
        outcome = self._merge(obs)
        self._stats[outcome.value] += 1
        return outcome

    def merge_many(self, observations) -> int:
        """Merge a batch; return how many created new identities."""
        created = 0
        for obs in observations:
            if self.merge(obs) == MergeOutcome.CREATED:
                created += 1
        return created

    def records(self) -> List[AssetRecord]:
        """
        Read view of the collection.

        Self-hosted video files are hidden once any provider stream is known:
        in mixed galleries they are the fallback render of a streamed clip.
        """
        out = []
        for rec in self._records.values():
            if (
                self._provider_video_seen
                and rec.type == MediaType.VIDEO
                and is_self_hosted_video(rec.src, self._profile)
            ):
                continue
            out.append(rec)
        return out

    # -------------------
    # internals
    # -------------------
    def _merge(self, obs: Observation) -> MergeOutcome:
        canon = canonicalize(obs.src, self._base_url, obs.type_hint, self._profile)
        if canon is None:
            return MergeOutcome.REJECTED

        if canon.poster_only:
            return self._offer_poster(playback_id_from_url(canon.src, self._profile), canon.src)

        if canon.media_type == MediaType.VIDEO:
            if self._force_top_tier:
                canon = canon._replace(src=upgrade_to_top_tier(canon.src, self._profile))
            if is_provider_video(canon.src, self._profile):
                self._provider_video_seen = True

        ident = resolve_identity(canon, normalize_stable_id(obs.stable_id, self._base_url), self._profile)

        poster = None
        if canon.media_type == MediaType.VIDEO and obs.poster:
            p = canonicalize(obs.poster, self._base_url, TypeHint.IMAGE, self._profile)
            if p is not None and p.media_type == MediaType.IMAGE:
                poster = p.src

        incoming = AssetRecord(
            key=ident.key,
            type=canon.media_type,
            src=canon.src,
            width=obs.width,
            height=obs.height,
            poster=poster,
            position=obs.position,
            seq=next(self._seq),
            playback_id=ident.playback_id,
            keys=set(ident.all_keys),
            src_area=obs.width * obs.height,
        )

        joined: List[int] = []
        keys = set(incoming.keys)
        for h in self._candidates(ident.all_keys):
            if keys_compatible(keys, self._records[h].keys):
                joined.append(h)
                keys |= self._records[h].keys

        if not joined:
            self._store(next(self._handles), incoming)
            self._attach_pending(incoming)
            return MergeOutcome.CREATED

        handle = joined[0]
        before = copy.deepcopy(self._records[handle]) if len(joined) == 1 else None

        target = self._unstore(handle)
        for h in joined[1:]:
            self._absorb(target, self._unstore(h))
        self._absorb(target, incoming)
        target.key = strongest_key(target.keys)
        self._store(handle, target)
        self._attach_pending(target)

        if before is not None and before == target:
            return MergeOutcome.UNCHANGED
        return MergeOutcome.UPDATED

    def _candidates(self, keys: Iterable[str]) -> List[int]:
        """Records reachable through keys, strongest key first, then by record key."""
        out: List[int] = []
        for k in keys:
            hits = self._aliases.get(k, ())
            for h in sorted(hits, key=lambda h: self._records[h].key):
                if h not in out:
                    out.append(h)
        return out

    def _store(self, handle: int, rec: AssetRecord) -> None:
        self._records[handle] = rec
        for k in rec.keys:
            self._aliases.setdefault(k, set()).add(handle)

    def _unstore(self, handle: int) -> AssetRecord:
        rec = self._records.pop(handle)
        for k in rec.keys:
            held = self._aliases.get(k)
            if held is not None:
                held.discard(handle)
                if not held:
                    del self._aliases[k]
        return rec

    def _rank(self, media_type: MediaType, src: str) -> Tuple[bool, bool, int]:
        """Video over image, provider stream over self-hosted file, higher rendition over lower."""
        return (
            media_type == MediaType.VIDEO,
            is_provider_video(src, self._profile),
            quality_tier(src, self._profile),
        )

    def _absorb(self, rec: AssetRecord, other: AssetRecord) -> None:
        """Fold other into rec, keeping the best of each field."""
        if other.src == rec.src:
            rec.src_area = max(rec.src_area, other.src_area)
        else:
            # equal ranks: the variant reported larger wins, then the smaller URL
            mine = self._rank(rec.type, rec.src) + (rec.src_area,)
            theirs = self._rank(other.type, other.src) + (other.src_area,)
            if theirs > mine or (theirs == mine and other.src < rec.src):
                if rec.type == MediaType.IMAGE and other.type == MediaType.VIDEO:
                    rec.poster = _better_poster(rec.poster, rec.src)
                rec.type = other.type
                rec.src = other.src
                rec.src_area = other.src_area
            elif rec.type == MediaType.VIDEO and other.type == MediaType.IMAGE:
                rec.poster = _better_poster(rec.poster, other.src)

        rec.playback_id = min(filter(None, (rec.playback_id, other.playback_id)), default=None)

        rec.width = max(rec.width, other.width)
        rec.height = max(rec.height, other.height)
        rec.position = _min_position(rec.position, other.position)
        rec.seq = min(rec.seq, other.seq)
        rec.poster = _better_poster(rec.poster, other.poster)
        rec.keys |= other.keys

        if rec.type != MediaType.VIDEO:
            rec.poster = None

    def _offer_poster(self, pid: Optional[str], url: str) -> MergeOutcome:
        if not pid:
            return MergeOutcome.REJECTED

        self._thumbnails[pid] = _better_poster(self._thumbnails.get(pid), url)
        handles = self._aliases.get(playback_key(pid))
        if not handles:
            return MergeOutcome.POSTER_DEFERRED

        outcome = MergeOutcome.UNCHANGED
        for h in sorted(handles):
            rec = self._records[h]
            best = _better_poster(rec.poster, url)
            if rec.type == MediaType.VIDEO and best != rec.poster:
                rec.poster = best
                outcome = MergeOutcome.POSTER_ATTACHED
        return outcome

    def _attach_pending(self, rec: AssetRecord) -> None:
        if rec.type != MediaType.VIDEO:
            return
        for k in sorted(_with_prefix(rec.keys, PLAYBACK_PREFIX)):
            pid = k[len(PLAYBACK_PREFIX):]
            thumb = self._thumbnails.get(pid)
            best = _better_poster(rec.poster, thumb)
            if best != rec.poster:
                rec.poster = best
                logger.debug(f"Attached provider thumbnail for playback id {pid}")
