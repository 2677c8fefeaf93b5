"""
Page automation surface.

The harvester never talks to a browser directly. It drives any object
with this shape, which keeps the discovery loop testable with a fake page.
"""

from typing import Awaitable, Callable, Dict, List, Protocol, runtime_checkable

from galleryharvest.harvester.models import Observation


class NavigationError(RuntimeError):
    """The gallery page could not be loaded. Fatal to the run."""


@runtime_checkable
class ResponseLike(Protocol):
    """What network callbacks receive (a Playwright Response satisfies it)."""
    url: str
    headers: Dict[str, str]

    async def text(self) -> str: ...


ResponseCallback = Callable[[ResponseLike], Awaitable[None]]


@runtime_checkable
class PageSurface(Protocol):
    async def navigate(self, url: str) -> None:
        """Load url; raise NavigationError when it cannot be reached."""
        ...

    async def snapshot_visible_media(self) -> List[Observation]:
        ...

    async def scroll_by(self, px: int) -> None:
        ...

    async def wait(self, ms: int) -> None:
        ...

    def on_network_response(self, callback: ResponseCallback) -> None:
        """Register an async callback invoked for every network response."""
        ...

    async def current_scroll_height(self) -> int:
        ...
