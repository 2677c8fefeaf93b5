"""
Unit tests for the scroll convergence controller.

The page is a scripted FakeSurface; no browser is involved.
"""

import asyncio

import pytest

from galleryharvest.harvester.convergence import (
    ConvergenceState,
    ScrollConvergenceController,
    StopReason,
)
from galleryharvest.harvester.network import NetworkObserver
from galleryharvest.harvester.reconciler import AssetReconciler
from tests.conftest import GALLERY_URL, FakeResponse, FakeSurface, dom_image, net


def make_controller(surface, **kwargs):
    rec = AssetReconciler(base_url=GALLERY_URL)
    opts = {"max_steps": 50, "stable_checks": 3, "scroll_px": 900, "wait_ms": 0}
    opts.update(kwargs)
    return ScrollConvergenceController(surface, rec, **opts), rec


class TestStaticFeed:
    """Tests on a gallery that never grows."""

    def test_terminates_within_threshold_plus_one(self, static_feed_surface):
        """Test that a static feed converges in stable_checks + 1 steps."""
        controller, rec = make_controller(static_feed_surface, stable_checks=3)
        report = asyncio.run(controller.run())

        assert report.stop_reason == StopReason.STABLE
        assert report.steps <= 3 + 1
        assert report.identities == 2
        assert controller.state == ConvergenceState.CONVERGED

    def test_final_snapshot_taken(self, static_feed_surface):
        """Test that one more snapshot is merged after the loop."""
        controller, _ = make_controller(static_feed_surface)
        report = asyncio.run(controller.run())
        assert static_feed_surface.snapshots == report.steps + 1

    def test_scrolls_by_configured_increment(self, static_feed_surface):
        """Test that every step scrolls by scroll_px and waits wait_ms."""
        controller, _ = make_controller(static_feed_surface, scroll_px=1944, wait_ms=5)
        asyncio.run(controller.run())
        assert set(static_feed_surface.scrolls) == {1944}
        assert set(static_feed_surface.waits) == {5}


class TestGrowingFeed:
    """Tests on a gallery that keeps loading."""

    def test_height_growth_resets_counter(self):
        """Test that the loop keeps going while the page grows."""
        frames = [
            (1000 * (i + 1), [dom_image(f"https://cdn.x/{i}.jpg", top=1000 * i)], [])
            for i in range(6)
        ]
        surface = FakeSurface(frames=frames)
        controller, rec = make_controller(surface, stable_checks=2)
        report = asyncio.run(controller.run())

        assert report.stop_reason == StopReason.STABLE
        assert report.identities == 6
        assert report.scroll_height == 6000

    def test_new_items_without_height_growth_keep_going(self):
        """Test that a virtualized grid swapping tiles in place does not stop early."""
        frames = [
            (4000, [dom_image(f"https://cdn.x/v{i}.jpg", top=100 * i)], [])
            for i in range(5)
        ]
        surface = FakeSurface(frames=frames)
        controller, rec = make_controller(surface, stable_checks=2)
        asyncio.run(controller.run())
        assert len(rec) == 5

    def test_network_discoveries_count_as_progress(self):
        """Test that items arriving over the network during a step reset the item counter."""
        def feed(n):
            return FakeResponse(
                f"https://api.cosmos.so/feed?page={n}",
                "application/json",
                {"items": [{"url": f"https://cdn.cosmos.so/n{n}.jpg"}]},
            )

        frames = [(3000, [], [feed(i)]) for i in range(1, 5)]
        surface = FakeSurface(frames=frames)
        controller, rec = make_controller(surface, stable_checks=2)
        surface.on_network_response(NetworkObserver(rec).handle_response)

        report = asyncio.run(controller.run())
        # frame 0 delivers nothing; frames 1..3 each add one item
        assert report.identities == 3
        assert report.steps == 3 + 2

    def test_creation_counts_even_when_joins_shrink_collection(self):
        """Test that a new identity resets the quiet counter although the record count is flat."""
        frames = [(1000, [
            dom_image("https://cdn.x/a.jpg", top=0, stable_id="tile-1"),
            dom_image("https://cdn.x/c.jpg", top=900),
        ], [])]
        controller, rec = make_controller(FakeSurface(frames=frames))
        rec.merge(net("https://cdn.x/a.jpg"))
        rec.merge(dom_image("https://cdn.x/b.jpg", top=0, stable_id="tile-1"))
        assert len(rec) == 2

        asyncio.run(controller.step())

        assert len(rec) == 2
        assert controller.items_stable == 0
        assert controller.height_stable == 1


class TestStepCeiling:
    """Tests for the hard step limit."""

    def test_ceiling_stops_endless_feed(self):
        """Test that an ever-growing page stops at max_steps."""
        frames = [
            (1000 * (i + 1), [dom_image(f"https://cdn.x/{i}.jpg", top=1000 * i)], [])
            for i in range(100)
        ]
        surface = FakeSurface(frames=frames)
        controller, _ = make_controller(surface, max_steps=7)
        report = asyncio.run(controller.run())

        assert report.stop_reason == StopReason.STEP_CEILING
        assert report.steps == 7

    def test_step_after_convergence_is_noop(self, static_feed_surface):
        """Test that stepping a converged controller does nothing."""
        controller, _ = make_controller(static_feed_surface, max_steps=1)
        asyncio.run(controller.step())
        assert controller.converged
        scrolls = len(static_feed_surface.scrolls)
        asyncio.run(controller.step())
        assert len(static_feed_surface.scrolls) == scrolls


class TestValidation:
    """Tests for constructor arguments."""

    @pytest.mark.parametrize("kwargs", [{"max_steps": 0}, {"stable_checks": 0}])
    def test_rejects_non_positive(self, kwargs, static_feed_surface):
        """Test that zero limits are rejected."""
        with pytest.raises(ValueError):
            make_controller(static_feed_surface, **kwargs)
