"""
Convergence-driven scroll loop.

Scroll height alone is a poor stop signal: virtualized grids stop
growing while still swapping new tiles in. New identities alone are
no better: a slow feed produces quiet steps before the next page lands.
The loop stops only when both have been quiet long enough, or at a hard
step ceiling.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from galleryharvest.core.logging import get_logger
from galleryharvest.harvester.reconciler import AssetReconciler
from galleryharvest.harvester.surface import PageSurface

logger = get_logger(__name__)


class ConvergenceState(str, Enum):
    IDLE = "idle"
    ADVANCING = "advancing"
    CONVERGED = "converged"


class StopReason(str, Enum):
    STABLE = "stable"
    STEP_CEILING = "step_ceiling"


@dataclass
class ConvergenceReport:
    steps: int
    stop_reason: StopReason
    scroll_height: int
    identities: int


class ScrollConvergenceController:
    """
    Drive the page forward until discovery converges.

    Args:
        surface: Page automation surface
        reconciler: Collection every snapshot is merged into
        max_steps: Hard ceiling on steps; the loop always terminates
        stable_checks: Consecutive quiet steps required on both counters
        scroll_px: Scroll increment per step
        wait_ms: Settle time after each scroll
        progress_every: Log progress every N steps

    Example:
        >>> controller = ScrollConvergenceController(surface, reconciler, stable_checks=3)
        >>> report = await controller.run()
        >>> report.stop_reason
        <StopReason.STABLE: 'stable'>
    """

    def __init__(
        self,
        surface: PageSurface,
        reconciler: AssetReconciler,
        max_steps: int = 260,
        stable_checks: int = 8,
        scroll_px: int = 1944,
        wait_ms: int = 900,
        progress_every: int = 10,
    ):
        if max_steps <= 0:
            raise ValueError(f"max_steps must be positive, got {max_steps}")
        if stable_checks <= 0:
            raise ValueError(f"stable_checks must be positive, got {stable_checks}")

        self._surface = surface
        self._reconciler = reconciler
        self.max_steps = max_steps
        self.stable_checks = stable_checks
        self.scroll_px = scroll_px
        self.wait_ms = wait_ms
        self.progress_every = progress_every

        self.state = ConvergenceState.IDLE
        self.stop_reason: Optional[StopReason] = None
        self.steps = 0
        self.height_stable = 0
        self.items_stable = 0
        self._last_height = 0

    @property
    def converged(self) -> bool:
        return self.state == ConvergenceState.CONVERGED

    async def collect(self) -> int:
        """Merge one DOM snapshot; return the number of new identities."""
        observations = await self._surface.snapshot_visible_media()
        return self._reconciler.merge_many(observations)

    async def step(self) -> ConvergenceState:
        """
        One iteration: snapshot, merge, scroll, settle, measure.

        Network responses arriving during the settle wait are merged by the
        observer callback and count towards this step's growth.
        """
        if self.converged:
            return self.state

        if self.state == ConvergenceState.IDLE:
            self._last_height = await self._surface.current_scroll_height()
            self.state = ConvergenceState.ADVANCING

        created_before = self._reconciler.created_total

        await self.collect()
        await self._surface.scroll_by(self.scroll_px)
        await self._surface.wait(self.wait_ms)

        height = await self._surface.current_scroll_height()
        self.steps += 1

        if height > self._last_height:
            self.height_stable = 0
        else:
            self.height_stable += 1
        self._last_height = height

        # identities created by the snapshot or by responses during the wait
        if self._reconciler.created_total > created_before:
            self.items_stable = 0
        else:
            self.items_stable += 1

        if self.height_stable >= self.stable_checks and self.items_stable >= self.stable_checks:
            self._finish(StopReason.STABLE)
        elif self.steps >= self.max_steps:
            self._finish(StopReason.STEP_CEILING)

        if self.progress_every and self.steps % self.progress_every == 0:
            logger.info(
                f"scroll {self.steps}, identities: {len(self._reconciler)}, "
                f"height: {height}, quiet: h={self.height_stable} i={self.items_stable}"
            )

        return self.state

    def _finish(self, reason: StopReason) -> None:
        self.state = ConvergenceState.CONVERGED
        self.stop_reason = reason
        logger.info(f"Converged after {self.steps} steps ({reason.value})")

    async def run(self) -> ConvergenceReport:
        """Step until converged, then take one last snapshot of the final viewport."""
        while not self.converged:
            await self.step()
        await self.collect()
        return ConvergenceReport(
            steps=self.steps,
            stop_reason=self.stop_reason,
            scroll_height=self._last_height,
            identities=len(self._reconciler),
        )
