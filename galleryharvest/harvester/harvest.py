"""
Harvest orchestration.

Wires one page surface to the reconciler, the network observer, the
convergence loop and the finalizer, and turns the outcome into a
HarvestPayload. Every run ends with a payload, never an exception.
"""

from galleryharvest.core.config import Config
from galleryharvest.core.error_logger import get_error_logger
from galleryharvest.core.error_models import ErrorComponent, ErrorStage, ErrorType
from galleryharvest.core.logging import get_logger
from galleryharvest.harvester.convergence import ScrollConvergenceController
from galleryharvest.harvester.models import HarvestPayload
from galleryharvest.harvester.network import NetworkObserver
from galleryharvest.harvester.ordering import OrderingFinalizer
from galleryharvest.harvester.reconciler import AssetReconciler
from galleryharvest.harvester.surface import NavigationError, PageSurface
from galleryharvest.harvester.url_utils import domain_of

logger = get_logger(__name__)


def record_failure(
    exc: Exception,
    stage: str,
    url: str,
    component: ErrorComponent = ErrorComponent.HARVESTER,
    **kwargs,
) -> None:
    """Append exc to the error log; an unwritable log directory only costs a log line."""
    try:
        get_error_logger().log_exception(
            exc,
            component=component,
            stage=stage,
            domain=domain_of(url) or "unknown",
            url=url,
            **kwargs,
        )
    except OSError as e:
        logger.error(f"Error log unavailable: {e}")


async def harvest_gallery(surface: PageSurface, config: Config) -> HarvestPayload:
    """
    Harvest one gallery through an already-open page surface.

    Args:
        surface: Page automation surface (Playwright or a test fake)
        config: Harvest configuration

    Returns:
        Success payload with items in visual order, or a failure payload
    """
    url = config.target_url
    settings = config.to_harvest_settings()

    reconciler = AssetReconciler(
        base_url=url,
        force_top_tier=config.force_top_tier,
        trusted_images_only=config.trusted_images_only,
    )
    observer = NetworkObserver(reconciler)
    surface.on_network_response(observer.handle_response)

    stage = ErrorStage.NAVIGATE
    try:
        logger.info(f"Opening {url}")
        await surface.navigate(url)

        stage = ErrorStage.SETTLE
        await surface.wait(settings.first_idle_ms)

        stage = ErrorStage.SCROLL
        controller = ScrollConvergenceController(
            surface,
            reconciler,
            max_steps=settings.max_steps,
            stable_checks=settings.stable_checks,
            scroll_px=settings.scroll_px,
            wait_ms=settings.wait_ms,
        )
        report = await controller.run()

        stage = ErrorStage.FINALIZE
        items = OrderingFinalizer(reverse=config.reverse_output).finalize(reconciler.records())
    except NavigationError as e:
        logger.error(f"Navigation failed: {e}")
        record_failure(e, stage, url, error_type=ErrorType.NAVIGATION_ERROR)
        return HarvestPayload.failure(url, str(e))
    except Exception as e:
        logger.error(f"Harvest failed during {stage}: {e}", exc_info=True)
        record_failure(e, stage, url, include_stack_trace=True)
        return HarvestPayload.failure(url, str(e) or type(e).__name__)

    logger.info(
        f"Done: {len(items)} items after {report.steps} steps ({report.stop_reason.value}); "
        f"network responses: {observer.responses_seen}, unreadable: {observer.failures}; "
        f"merges: {reconciler.stats()}"
    )
    if reconciler.pending_posters:
        logger.debug(f"{len(reconciler.pending_posters)} thumbnails never matched a video")

    return HarvestPayload.success(url, items)


async def run_harvest(config: Config) -> HarvestPayload:
    """
    Launch a browser, harvest config.target_url and close everything.

    Requires playwright and an installed Chromium.
    """
    from playwright.async_api import async_playwright, Error as PlaywrightError
    from galleryharvest.harvester.navigation import PlaywrightSurface, gallery_page

    try:
        async with async_playwright() as pw:
            async with gallery_page(pw, config) as page:
                surface = PlaywrightSurface(page, nav_timeout_ms=config.nav_timeout_ms)
                return await harvest_gallery(surface, config)
    except PlaywrightError as e:
        logger.error(f"Browser error: {e}")
        record_failure(e, ErrorStage.NAVIGATE, config.target_url, error_type=ErrorType.BROWSER_ERROR)
        return HarvestPayload.failure(config.target_url, str(e))
