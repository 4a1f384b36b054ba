"""
Spots data provider for the DX Cluster app.

Chooses which feed adapter answers a spot query:
- explicit mode: exactly the named adapter
- auto mode: adapters in AUTO_SOURCE_ORDER, stopping at the first that
  returns a non-empty batch
"""

import logging
import threading
from typing import Dict, List, Optional, Tuple

import requests

from models import Spot
from data_sources.spot_sources import (
    AUTO_SOURCE_INFO, AUTO_SOURCE_ORDER, SPOT_SOURCES, SpotSource, build_sources
)

logger = logging.getLogger(__name__)


class SpotsDataProvider:
    """Provider for spot data from the registered feed adapters."""

    def __init__(self, config=None, sources: Optional[Dict[str, SpotSource]] = None,
                 order: Tuple[str, ...] = AUTO_SOURCE_ORDER):
        if sources is None:
            if config is None:
                raise ValueError("SpotsDataProvider needs a config or explicit sources")
            self.session = requests.Session()
            sources = build_sources(config, session=self.session)
        else:
            self.session = None
        self.sources = sources
        self.order = tuple(source_id for source_id in order if source_id in sources)

    def fetch_spots(self, source: str = 'auto',
                    cancel_event: Optional[threading.Event] = None) -> Tuple[List[Spot], Optional[str]]:
        """Fetch one batch.

        Returns ``(spots, source_id)`` where ``source_id`` names the adapter that
        produced the batch, or ``None`` when every adapter came back empty.
        Raises ValueError for an unknown source id.
        """
        source = (source or 'auto').strip().lower()

        if source == 'auto':
            return self._fetch_auto(cancel_event)

        adapter = self.sources.get(source)
        if adapter is None:
            raise ValueError(f"Unknown spot source: {source}")

        spots = adapter.fetch(cancel_event)
        return spots, (source if spots else None)

    def _fetch_auto(self, cancel_event: Optional[threading.Event]) -> Tuple[List[Spot], Optional[str]]:
        for source_id in self.order:
            if cancel_event is not None and cancel_event.is_set():
                break

            spots = self.sources[source_id].fetch(cancel_event)
            if spots:
                logger.info(f"Auto source: {len(spots)} spots from {source_id}")
                return spots, source_id

            logger.debug(f"Auto source: {source_id} returned nothing, trying next")

        logger.info("Auto source: all spot sources exhausted")
        return [], None

    def source_name(self, source_id: Optional[str]) -> Optional[str]:
        adapter = self.sources.get(source_id) if source_id else None
        return adapter.name if adapter else None

    @staticmethod
    def list_sources() -> List[Dict[str, str]]:
        """Static listing of selectable sources, ``auto`` first."""
        listing = [dict(AUTO_SOURCE_INFO)]
        for source_class in SPOT_SOURCES.values():
            listing.append({
                'id': source_class.id,
                'name': source_class.name,
                'description': source_class.description,
            })
        return listing

    def close(self):
        if self.session is not None:
            self.session.close()
