"""
Network-channel discovery.

Galleries often know about items before they render them: media files
show up as responses, and feed APIs return JSON full of asset URLs.
NetworkObserver turns both into observations for the reconciler.
"""

import json
from typing import Any, Iterator, List

from galleryharvest.core.logging import get_logger
from galleryharvest.harvester.models import Observation, TypeHint
from galleryharvest.harvester.reconciler import AssetReconciler
from galleryharvest.harvester.surface import ResponseLike
from galleryharvest.harvester.url_utils import extract_urls, media_hint

logger = get_logger(__name__)


def _walk_strings(node: Any) -> Iterator[str]:
    if isinstance(node, str):
        yield node
    elif isinstance(node, dict):
        for v in node.values():
            yield from _walk_strings(v)
    elif isinstance(node, list):
        for v in node:
            yield from _walk_strings(v)


def urls_from_json(text: str) -> List[str]:
    """
    Collect every absolute URL found in the string values of a JSON document.

    Raises:
        json.JSONDecodeError: If text is not valid JSON

    Example:
        >>> urls_from_json('{"items": [{"src": "https://cdn.x/a.jpg"}], "n": 1}')
        ['https://cdn.x/a.jpg']
    """
    doc = json.loads(text)
    seen = set()
    out: List[str] = []
    for s in _walk_strings(doc):
        for u in extract_urls(s):
            if u not in seen:
                seen.add(u)
                out.append(u)
    return out


class NetworkObserver:
    """
    Response callback that feeds URLs into the reconciler.

    Each response is handled in isolation: a body that cannot be read or
    parsed is skipped and never affects other responses.
    """

    def __init__(self, reconciler: AssetReconciler):
        self._reconciler = reconciler
        self.responses_seen = 0
        self.urls_reported = 0
        self.failures = 0

    async def handle_response(self, response: ResponseLike) -> None:
        """Entry point registered with the page surface."""
        self.responses_seen += 1
        try:
            observations = await self.observations_from_response(response)
        except Exception as e:
            self.failures += 1
            logger.debug(f"Skipping response body from {getattr(response, 'url', '?')}: {e}")
            return

        self.urls_reported += len(observations)
        for obs in observations:
            self._reconciler.merge(obs)

    async def observations_from_response(self, response: ResponseLike) -> List[Observation]:
        url = response.url
        hint = media_hint(url)
        content_type = ((response.headers or {}).get("content-type") or "").lower()

        if hint is None:
            if content_type.startswith("image/"):
                hint = TypeHint.IMAGE
            elif content_type.startswith("video/"):
                hint = TypeHint.VIDEO

        if hint is not None:
            return [Observation.from_network(url, hint)]

        if "json" not in content_type:
            return []

        text = await response.text()
        return [
            Observation.from_network(u, media_hint(u) or TypeHint.UNKNOWN)
            for u in urls_from_json(text)
        ]
