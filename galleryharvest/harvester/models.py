"""
Pydantic models for harvested media.

This module defines the observation, asset and payload models with
automatic validation, dimension clamping and serialization.
"""

import math
from enum import Enum
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict


# Upper bound for reported pixel dimensions; larger reads come from broken DOM states
MAX_DIMENSION = 20000


class MediaType(str, Enum):
    """Kinds of asset the harvester emits."""
    IMAGE = "image"
    VIDEO = "video"


class TypeHint(str, Enum):
    """What the discovery channel believes a URL points at."""
    IMAGE = "image"
    VIDEO = "video"
    UNKNOWN = "unknown"


class DiscoveryChannel(str, Enum):
    """Where an observation came from."""
    DOM = "dom"
    NETWORK = "network"


def clamp_dim(value: Any) -> int:
    """
    Coerce a raw width/height into the 0..MAX_DIMENSION range.

    Non-numeric, non-finite, zero and negative values all mean "unknown" (0).

    Example:
        >>> clamp_dim("640.7")
        640
        >>> clamp_dim(-3), clamp_dim(float("nan")), clamp_dim(10 ** 9)
        (0, 0, 20000)
    """
    try:
        x = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(x) or x <= 0:
        return 0
    return min(max(int(math.floor(x)), 1), MAX_DIMENSION)


def _coerce_coord(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        x = float(value)
    except (TypeError, ValueError):
        return None
    return x if math.isfinite(x) else None


class Observation(BaseModel):
    """
    A raw sighting of a possible asset.

    Produced by the DOM snapshot or the network observer and folded into
    the reconciled collection immediately; never stored.
    """
    channel: DiscoveryChannel
    src: str = Field(..., min_length=1)
    type_hint: TypeHint = TypeHint.UNKNOWN
    poster: Optional[str] = None
    top: Optional[float] = None
    left: Optional[float] = None
    width: int = 0
    height: int = 0
    stable_id: Optional[str] = None

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    @field_validator("width", "height", mode="before")
    @classmethod
    def clamp_dimensions(cls, v: Any) -> int:
        return clamp_dim(v)

    @field_validator("top", "left", mode="before")
    @classmethod
    def coerce_coordinates(cls, v: Any) -> Optional[float]:
        return _coerce_coord(v)

    @field_validator("poster", "stable_id", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    @property
    def position(self) -> Optional[tuple]:
        """(top, left) when the observation carries geometry."""
        if self.top is None:
            return None
        return (self.top, self.left or 0.0)

    @classmethod
    def from_dom(cls, item: Dict[str, Any]) -> "Observation":
        """
        Build an observation from one item returned by the snapshot script.

        Raises:
            pydantic.ValidationError: If the item has no usable src
        """
        return cls(
            channel=DiscoveryChannel.DOM,
            src=item.get("src") or "",
            type_hint=item.get("type") if item.get("type") in ("image", "video") else TypeHint.UNKNOWN,
            poster=item.get("poster"),
            top=item.get("top"),
            left=item.get("left"),
            width=item.get("width"),
            height=item.get("height"),
            stable_id=item.get("stableId"),
        )

    @classmethod
    def from_network(cls, url: str, type_hint: TypeHint = TypeHint.UNKNOWN) -> "Observation":
        return cls(channel=DiscoveryChannel.NETWORK, src=url, type_hint=type_hint)


class Asset(BaseModel):
    """
    One emitted gallery item.

    Position is deliberately absent: it only drives ordering.
    """
    type: MediaType
    src: str = Field(..., min_length=1)
    width: int = 0
    height: int = 0
    poster: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("width", "height", mode="before")
    @classmethod
    def clamp_dimensions(cls, v: Any) -> int:
        return clamp_dim(v)

    @model_validator(mode="after")
    def poster_only_on_video(self) -> "Asset":
        if self.poster and self.type != MediaType.VIDEO.value:
            raise ValueError("poster is only valid on video assets")
        return self

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for the output payload, omitting an absent poster."""
        return self.model_dump(exclude_none=True)


class HarvestPayload(BaseModel):
    """
    The document written at the end of a run.

    Success: ok=True with items in visual order.
    Failure: ok=False, no items, and an error message.
    """
    ok: bool
    source: str
    count: int = Field(default=0, ge=0)
    items: List[Asset] = Field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def success(cls, source: str, items: List[Asset]) -> "HarvestPayload":
        return cls(ok=True, source=source, count=len(items), items=items)

    @classmethod
    def failure(cls, source: str, error: str) -> "HarvestPayload":
        return cls(ok=False, source=source, count=0, items=[], error=error or "unknown error")

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "ok": self.ok,
            "source": self.source,
            "count": self.count,
            "items": [a.to_payload() for a in self.items],
        }
        if not self.ok:
            out["error"] = self.error
        return out
