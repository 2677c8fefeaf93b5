"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures that are available
to all tests in the test suite.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

from galleryharvest.harvester.models import Observation, TypeHint


GALLERY_URL = "https://www.cosmos.so/rlphoto/swim"


# ============================================================================
# Fakes
# ============================================================================

class FakeResponse:
    """Stand-in for a Playwright Response."""

    def __init__(self, url: str, content_type: str = "", body: Any = "", fail: bool = False):
        self.url = url
        self.headers = {"content-type": content_type} if content_type else {}
        self._body = body if isinstance(body, str) else json.dumps(body)
        self._fail = fail

    async def text(self) -> str:
        if self._fail:
            raise RuntimeError("Response body is unavailable for redirect responses")
        return self._body


class FakeSurface:
    """
    Scripted page surface.

    Each frame is (scroll_height, observations, responses). A frame is what
    the page shows between two scrolls: snapshots return its observations and
    the responses are delivered while the harvester waits after scrolling into
    it. Past the last frame the page stays on the last one.
    """

    def __init__(
        self,
        frames: Optional[List[Tuple[int, List[Observation], List[FakeResponse]]]] = None,
        initial_responses: Optional[List[FakeResponse]] = None,
        nav_error: Optional[Exception] = None,
    ):
        self.frames = frames or [(1000, [], [])]
        self.initial_responses = list(initial_responses or [])
        self.nav_error = nav_error
        self.index = 0
        self.callbacks = []
        self.navigated_to: Optional[str] = None
        self.scrolls: List[int] = []
        self.waits: List[int] = []
        self.snapshots = 0

    @property
    def frame(self):
        return self.frames[min(self.index, len(self.frames) - 1)]

    async def navigate(self, url: str) -> None:
        if self.nav_error is not None:
            raise self.nav_error
        self.navigated_to = url

    async def snapshot_visible_media(self) -> List[Observation]:
        self.snapshots += 1
        return list(self.frame[1])

    async def scroll_by(self, px: int) -> None:
        self.scrolls.append(px)
        self.index += 1

    async def wait(self, ms: int) -> None:
        self.waits.append(ms)
        if self.navigated_to is not None and not self.scrolls:
            pending, self.initial_responses = self.initial_responses, []
        elif self.index < len(self.frames):
            pending = list(self.frame[2])
        else:
            pending = []
        for resp in pending:
            for cb in self.callbacks:
                await cb(resp)

    def on_network_response(self, callback) -> None:
        self.callbacks.append(callback)

    async def current_scroll_height(self) -> int:
        return self.frame[0]


# ============================================================================
# Helpers
# ============================================================================

def dom_image(src: str, top: float, left: float = 0, width: int = 800, height: int = 600,
              stable_id: Optional[str] = None) -> Observation:
    return Observation.from_dom({
        "type": "image", "src": src, "top": top, "left": left,
        "width": width, "height": height, "stableId": stable_id,
    })


def dom_video(src: str, top: float, left: float = 0, poster: Optional[str] = None,
              width: int = 1920, height: int = 1080, stable_id: Optional[str] = None) -> Observation:
    return Observation.from_dom({
        "type": "video", "src": src, "poster": poster, "top": top, "left": left,
        "width": width, "height": height, "stableId": stable_id,
    })


def net(url: str, hint: TypeHint = TypeHint.UNKNOWN) -> Observation:
    return Observation.from_network(url, hint)


# ============================================================================
# Paths and Directories
# ============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def test_output_dir(tmp_path: Path) -> Path:
    """Create a temporary output directory for tests."""
    output_dir = tmp_path / "test_output"
    output_dir.mkdir(exist_ok=True)
    return output_dir


# ============================================================================
# Environment
# ============================================================================

_CONFIG_ENV_VARS = (
    "TARGET_URL", "COSMOS_URL", "MAX_SCROLLS", "WAIT_BETWEEN", "FIRST_IDLE",
    "STABLE_CHECKS", "VIEWPORT_WIDTH", "VIEWPORT_HEIGHT", "DEVICE_SCALE_FACTOR",
    "NAV_TIMEOUT_MS", "HEADLESS", "REVERSE_OUTPUT", "FORCE_TOP_TIER",
    "TRUSTED_IMAGES_ONLY", "OUT_FILE", "LOG_LEVEL", "LOG_DIR",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path: Path) -> Path:
    """Clear harvester env vars and return a path to a missing .env file."""
    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return tmp_path / "missing.env"


@pytest.fixture
def error_log_dir(monkeypatch, tmp_path: Path) -> Path:
    """Route the global error logger to a temporary directory."""
    import galleryharvest.core.error_logger as error_logger_module
    from galleryharvest.core.error_logger import ErrorLogger

    log_dir = tmp_path / "errors"
    monkeypatch.setattr(error_logger_module, "_error_logger", ErrorLogger(log_dir=log_dir))
    return log_dir


@pytest.fixture
def harvest_config(clean_env, tmp_path: Path):
    """Fast configuration for fake-surface runs."""
    from galleryharvest.core.config import Config

    config = Config(env_path=clean_env)
    config.target_url = GALLERY_URL
    config.max_scrolls = 20
    config.wait_between_ms = 0
    config.first_idle_ms = 0
    config.stable_checks = 3
    config.out_file = tmp_path / "public" / "gallery.json"
    return config


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def sample_feed_json() -> Dict[str, Any]:
    """Return a feed API body that mentions images, a stream and junk."""
    return {
        "data": {
            "elements": [
                {"id": "e1", "image": {"url": "https://cdn.cosmos.so/abc-123?format=webp"}},
                {"id": "e2", "video": {"thumbnail": "https://image.mux.com/pb42/thumbnail.png?time=1",
                                       "playback": "https://stream.mux.com/pb42/medium.mp4"}},
                {"id": "e3", "owner": {"avatar": "https://www.cosmos.so/api/avatar/u1"}},
            ],
            "next": None,
            "count": 3,
        }
    }


@pytest.fixture
def static_feed_surface() -> FakeSurface:
    """A gallery that never grows: two images, one screen."""
    frame = [
        dom_image("https://cdn.cosmos.so/a.jpg", top=0, left=0),
        dom_image("https://cdn.cosmos.so/b.jpg", top=0, left=900),
    ]
    return FakeSurface(frames=[(2000, frame, [])])


# ============================================================================
# Test Markers
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "browser: mark test as requiring a real browser"
    )


