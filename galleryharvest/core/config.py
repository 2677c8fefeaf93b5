"""
Harvest settings read from configs/.env and the process environment.

Environment variables win over the .env file only when the file does not
set them (the file is loaded with override=True). Every tunable has a
default so a bare `gallery-harvest` run works against the default gallery.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv


DEFAULT_TARGET_URL = "https://www.cosmos.so/rlphoto/swim"
DEFAULT_ENV_PATH = Path("configs/.env")

_FALSE = {"0", "false", "False", "no"}
_TRUE = {"1", "true", "True", "yes"}


@dataclass(frozen=True)
class HarvestSettings:
    """Numeric knobs consumed by the convergence loop."""
    max_steps: int
    wait_ms: int
    first_idle_ms: int
    stable_checks: int
    scroll_px: int


class Config:
    """
    One harvest run's settings, grouped by concern.

    configs/.env.example lists every variable with its default.
    """

    def __init__(self, env_path: Optional[Path] = None):
        load_dotenv(dotenv_path=env_path or DEFAULT_ENV_PATH, override=True)

        # === Target ===
        self.target_url: str = (
            os.getenv("TARGET_URL") or os.getenv("COSMOS_URL") or DEFAULT_TARGET_URL
        )

        # === Convergence loop ===
        self.max_scrolls: int = int(os.getenv("MAX_SCROLLS", "260"))
        self.wait_between_ms: int = int(os.getenv("WAIT_BETWEEN", "900"))
        self.first_idle_ms: int = int(os.getenv("FIRST_IDLE", "8000"))
        self.stable_checks: int = int(os.getenv("STABLE_CHECKS", "8"))

        # === Browser ===
        self.viewport_width: int = int(os.getenv("VIEWPORT_WIDTH", "3840"))
        self.viewport_height: int = int(os.getenv("VIEWPORT_HEIGHT", "2160"))
        self.device_scale_factor: float = float(os.getenv("DEVICE_SCALE_FACTOR", "2"))
        self.nav_timeout_ms: int = int(os.getenv("NAV_TIMEOUT_MS", "120000"))
        self.headless: bool = os.getenv("HEADLESS", "1") not in _FALSE

        # === Reconciliation / output ===
        self.reverse_output: bool = os.getenv("REVERSE_OUTPUT", "0") in _TRUE
        self.force_top_tier: bool = os.getenv("FORCE_TOP_TIER", "0") in _TRUE
        self.trusted_images_only: bool = os.getenv("TRUSTED_IMAGES_ONLY", "1") not in _FALSE
        self.out_file: Path = Path(os.getenv("OUT_FILE", "public/gallery.json"))

        # === Logging ===
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")
        self.log_dir: Path = Path(os.getenv("LOG_DIR", "logs"))

    def validate(self) -> None:
        """Raise one ValueError naming every out-of-range setting."""
        errors = []

        if not self.target_url.startswith(("http://", "https://")):
            errors.append(f"TARGET_URL must be an http(s) URL, got {self.target_url!r}")

        if self.max_scrolls <= 0:
            errors.append(f"MAX_SCROLLS must be positive, got {self.max_scrolls}")

        if self.wait_between_ms < 0:
            errors.append(f"WAIT_BETWEEN must be non-negative, got {self.wait_between_ms}")

        if self.first_idle_ms < 0:
            errors.append(f"FIRST_IDLE must be non-negative, got {self.first_idle_ms}")

        if self.stable_checks <= 0:
            errors.append(f"STABLE_CHECKS must be positive, got {self.stable_checks}")

        if self.viewport_width <= 0 or self.viewport_height <= 0:
            errors.append(
                f"Viewport must be positive, got {self.viewport_width}x{self.viewport_height}"
            )

        if self.nav_timeout_ms <= 0:
            errors.append(f"NAV_TIMEOUT_MS must be positive, got {self.nav_timeout_ms}")

        if errors:
            raise ValueError("Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors))

    def to_harvest_settings(self) -> HarvestSettings:
        """Scroll by 90% of the viewport so consecutive snapshots overlap slightly."""
        return HarvestSettings(
            max_steps=self.max_scrolls,
            wait_ms=self.wait_between_ms,
            first_idle_ms=self.first_idle_ms,
            stable_checks=self.stable_checks,
            scroll_px=max(1, int(self.viewport_height * 0.9)),
        )

    def __repr__(self) -> str:
        fields = (
            "target_url", "max_scrolls", "wait_between_ms", "first_idle_ms",
            "stable_checks", "out_file", "log_level",
        )
        body = ", ".join(f"{name}={getattr(self, name)!r}" for name in fields)
        return f"Config({body})"
