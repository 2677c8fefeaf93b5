"""
Harvester module for media galleries.

This module discovers every image and video of an infinite-scroll
gallery, reconciles duplicate sightings, and emits them in visual order.

Module Structure:
- url_utils: URL canonicalization and classification
- identity: Identity keys for reconciliation
- models: Observation, Asset and payload models
- reconciler: Keyed, monotonic merge of observations
- ordering: Final visual ordering
- convergence: Scroll loop with dual stability counters
- network: Network response observer
- snapshot: In-page scripts (DOM snapshot, lazy-load forcing)
- surface: Page automation protocol
- navigation: Playwright surface and browser bootstrap (requires playwright)
- harvest: Run orchestration (entry point)
- file_manager: Payload output
"""

# Export pure modules directly (no playwright dependency)
from galleryharvest.harvester.url_utils import (
    HostProfile,
    DEFAULT_PROFILE,
    CanonicalUrl,
    canonicalize,
    domain_of,
    extract_urls,
    strip_url,
)
from galleryharvest.harvester.identity import Identity, resolve_identity
from galleryharvest.harvester.models import (
    Asset,
    DiscoveryChannel,
    HarvestPayload,
    MediaType,
    Observation,
    TypeHint,
)
from galleryharvest.harvester.reconciler import AssetReconciler, AssetRecord, MergeOutcome
from galleryharvest.harvester.ordering import OrderingFinalizer
from galleryharvest.harvester.convergence import (
    ConvergenceReport,
    ConvergenceState,
    ScrollConvergenceController,
    StopReason,
)
from galleryharvest.harvester.network import NetworkObserver, urls_from_json
from galleryharvest.harvester.surface import NavigationError, PageSurface
from galleryharvest.harvester.harvest import harvest_gallery, run_harvest
from galleryharvest.harvester.file_manager import write_payload


# Lazy loading for playwright-dependent objects
def __getattr__(name):
    """Lazy loading for playwright-dependent objects."""
    if name in ("PlaywrightSurface", "gallery_page"):
        from galleryharvest.harvester.navigation import PlaywrightSurface, gallery_page
        return {
            "PlaywrightSurface": PlaywrightSurface,
            "gallery_page": gallery_page,
        }[name]

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # URL utilities
    "HostProfile",
    "DEFAULT_PROFILE",
    "CanonicalUrl",
    "canonicalize",
    "domain_of",
    "extract_urls",
    "strip_url",
    # Identity
    "Identity",
    "resolve_identity",
    # Models
    "Asset",
    "DiscoveryChannel",
    "HarvestPayload",
    "MediaType",
    "Observation",
    "TypeHint",
    # Reconciliation and ordering
    "AssetReconciler",
    "AssetRecord",
    "MergeOutcome",
    "OrderingFinalizer",
    # Convergence
    "ConvergenceReport",
    "ConvergenceState",
    "ScrollConvergenceController",
    "StopReason",
    # Network
    "NetworkObserver",
    "urls_from_json",
    # Surface
    "NavigationError",
    "PageSurface",
    # Run
    "harvest_gallery",
    "run_harvest",
    "write_payload",
    # Playwright (lazy loaded)
    "PlaywrightSurface",
    "gallery_page",
]
