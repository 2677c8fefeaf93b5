"""
Final ordering of the reconciled collection.

The gallery is a grid laid out top-to-bottom, left-to-right, so visual
order is recovered from the best position each asset was seen at.
"""

from typing import Iterable, List

from galleryharvest.harvester.models import Asset
from galleryharvest.harvester.reconciler import AssetRecord


class OrderingFinalizer:
    """
    Sort reconciled records into the output feed.

    Args:
        reverse: Reverse the finished list (for consumers that expect newest-last)
    """

    def __init__(self, reverse: bool = False):
        self.reverse = reverse

    def order(self, records: Iterable[AssetRecord]) -> List[AssetRecord]:
        """
        Positioned records by (top, left), then network-only records in discovery order.

        Records never laid out in the DOM have no visual rank and go last.
        """
        records = list(records)
        positioned = sorted(
            (r for r in records if r.positioned),
            key=lambda r: (r.position[0], r.position[1], r.seq),
        )
        unplaced = sorted((r for r in records if not r.positioned), key=lambda r: r.seq)
        ordered = positioned + unplaced
        if self.reverse:
            ordered.reverse()
        return ordered

    def finalize(self, records: Iterable[AssetRecord]) -> List[Asset]:
        return [r.to_asset() for r in self.order(records)]
