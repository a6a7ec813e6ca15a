"""
Tiered SAO number resolution.

This module resolves the SAO catalog number of a star by trying, in order, the
local Gaia-SAO cross-match store and two remote services, stopping at the
first tier that produces a number.
"""

import asyncio
import logging
import math
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

from .source import CelestialObject, CrossMatchStore, QueryPosition, ResolutionTier
from .remote_source import RemoteCrossMatchClient
from ..config import (
    DEFAULT_SEARCH_RADIUS_ARCSEC, REMOTE_CONE_RADIUS_ARCSEC,
    DEFAULT_COORDINATE_SEARCH_RADIUS_ARCSEC, DEFAULT_CONCURRENT_REQUESTS,
    MIN_CONCURRENT_REQUESTS
)

log = logging.getLogger(__name__)

TierLookup = Callable[[], Awaitable[Optional[int]]]


def _validate_radius(radius_arcsec: float) -> None:
    if not isinstance(radius_arcsec, (int, float)) or not math.isfinite(radius_arcsec) or radius_arcsec < 0:
        raise ValueError(f"Search radius must be a finite, non-negative number of arcseconds, got {radius_arcsec!r}")


class IdentifierResolver:
    """
    Enriches CelestialObjects with their SAO catalog number.

    Strategy:
    1. Already set: nothing to do
    2. Local store by Gaia source_id
    3. Local store by position within the caller's radius
    4. SIMBAD identifier cross-match by Gaia source_id
    5. VizieR cone search at a fixed radius

    A failing tier never raises to the caller: store errors, network errors and
    unusable responses are logged and the next tier is tried. The caller only
    learns whether a number was found.

    Earlier tiers always win; answers from different tiers are never compared.
    """

    def __init__(self,
                 crossmatch_store: Optional[CrossMatchStore] = None,
                 remote_client: Optional[RemoteCrossMatchClient] = None,
                 remote_cone_radius_arcsec: float = REMOTE_CONE_RADIUS_ARCSEC):
        """
        Initialize the resolver.

        Args:
            crossmatch_store: Local Gaia-SAO cross-match store (optional)
            remote_client: Client for the SIMBAD/VizieR tiers (optional)
            remote_cone_radius_arcsec: Radius of the VizieR cone-search tier
        """
        _validate_radius(remote_cone_radius_arcsec)
        self.crossmatch_store = crossmatch_store
        self.remote_client = remote_client
        self.remote_cone_radius_arcsec = remote_cone_radius_arcsec
        self._stats = {tier.value: 0 for tier in ResolutionTier}
        self._stats.update({'processed': 0, 'resolved': 0, 'tier_errors': 0})

        if self.has_local_store():
            log.info("Gaia-SAO local database available")
            log.info(self.get_store_statistics())
        else:
            log.warning("Gaia-SAO local database not available. Using online queries only.")

    def has_local_store(self) -> bool:
        if self.crossmatch_store is None:
            return False
        try:
            return bool(self.crossmatch_store.is_available())
        except Exception as e:
            log.warning(f"Could not determine cross-match store availability: {e}")
            return False

    def get_store_statistics(self) -> str:
        if self.crossmatch_store is None:
            return "Local database not initialized"
        try:
            return self.crossmatch_store.statistics()
        except Exception as e:
            log.warning(f"Could not retrieve cross-match store statistics: {e}")
            return f"Local database statistics unavailable: {e}"

    async def resolve(self, obj: CelestialObject,
                      search_radius_arcsec: float = DEFAULT_SEARCH_RADIUS_ARCSEC) -> bool:
        """
        Determine and set the SAO number of obj.

        Args:
            obj: Object to enrich; only its sao_number field is ever written
            search_radius_arcsec: Radius for the local positional lookup

        Returns:
            True if obj has an SAO number afterwards, False otherwise.

        Raises:
            ValueError: If search_radius_arcsec is negative or not finite
        """
        _validate_radius(search_radius_arcsec)

        if obj.has_sao_number:
            self._record(ResolutionTier.ALREADY_SET)
            return True

        if not isinstance(obj.position, QueryPosition):
            raise TypeError(f"CelestialObject.position must be a QueryPosition, got {type(obj.position).__name__}")

        for tier, lookup in self._plan(obj, search_radius_arcsec):
            sao_number = await self._attempt(tier, lookup, obj)
            if sao_number is not None:
                obj.assign_sao_number(sao_number)
                log.debug(f"{self._describe(obj)} resolved to SAO {sao_number} via {tier.value}")
                self._record(tier)
                return True

        log.debug(f"No SAO number found for {self._describe(obj)}")
        self._record(ResolutionTier.UNRESOLVED)
        return False

    def _plan(self, obj: CelestialObject, search_radius_arcsec: float):
        """Yield (tier, lookup) pairs in priority order, skipping unusable tiers."""
        store_available = self.has_local_store()
        store = self.crossmatch_store
        remote = self.remote_client

        if store_available and obj.has_source_id:
            yield ResolutionTier.LOCAL_IDENTIFIER, self._wrap_sync(
                store.find_by_identifier, obj.source_id)

        if store_available:
            yield ResolutionTier.LOCAL_POSITION, self._wrap_sync(
                store.find_by_position, obj.position, search_radius_arcsec)

        if remote is None:
            return

        if obj.has_source_id:
            yield ResolutionTier.REMOTE_IDENTIFIER, lambda: remote.query_simbad_for_sao(obj.source_id)

        yield ResolutionTier.REMOTE_CONE, lambda: remote.cross_match_vizier(
            obj.position, self.remote_cone_radius_arcsec)

    @staticmethod
    def _wrap_sync(func: Callable[..., Optional[int]], *args) -> TierLookup:
        async def lookup() -> Optional[int]:
            return func(*args)
        return lookup

    async def _attempt(self, tier: ResolutionTier, lookup: TierLookup,
                       obj: CelestialObject) -> Optional[int]:
        try:
            result = await lookup()
        except Exception as e:
            self._stats['tier_errors'] += 1
            log.warning(f"{tier.value} lookup failed for {self._describe(obj)}: "
                        f"{type(e).__name__}: {e}")
            return None

        if result is None:
            return None
        try:
            return int(result)
        except (TypeError, ValueError):
            log.warning(f"{tier.value} lookup returned a non-integer SAO number {result!r}")
            return None

    async def resolve_many(self, objects: Iterable[CelestialObject],
                           search_radius_arcsec: float = DEFAULT_SEARCH_RADIUS_ARCSEC,
                           max_concurrent: int = DEFAULT_CONCURRENT_REQUESTS) -> int:
        """
        Resolve many objects concurrently.

        Each object's tiers still run one after another; only independent
        objects overlap, at most max_concurrent at a time.

        Returns:
            Number of objects holding an SAO number afterwards.
        """
        _validate_radius(search_radius_arcsec)
        semaphore = asyncio.Semaphore(max(MIN_CONCURRENT_REQUESTS, int(max_concurrent)))

        async def _bounded(obj: CelestialObject) -> bool:
            async with semaphore:
                return await self.resolve(obj, search_radius_arcsec)

        results = await asyncio.gather(*(_bounded(obj) for obj in objects))
        resolved = sum(1 for ok in results if ok)
        log.info(f"Resolved SAO numbers for {resolved} of {len(results)} objects")
        return resolved

    async def find_sao_by_coordinates(self, position: QueryPosition,
                                      search_radius_arcsec: float = DEFAULT_COORDINATE_SEARCH_RADIUS_ARCSEC) -> Optional[int]:
        """Direct VizieR cone lookup at the caller's radius (no local tiers)."""
        _validate_radius(search_radius_arcsec)
        if self.remote_client is None:
            return None
        try:
            return await self.remote_client.cross_match_vizier(position, search_radius_arcsec)
        except Exception as e:
            log.warning(f"VizieR coordinate lookup failed: {type(e).__name__}: {e}")
            return None

    def _record(self, tier: ResolutionTier) -> None:
        self._stats['processed'] += 1
        self._stats[tier.value] += 1
        if tier is not ResolutionTier.UNRESOLVED:
            self._stats['resolved'] += 1

    def get_statistics(self) -> Dict[str, Any]:
        """Get current resolution statistics."""
        return self._stats.copy()

    def log_statistics(self) -> None:
        """Log a summary of resolution statistics."""
        stats = self.get_statistics()
        log.info(f"Resolution summary: {stats['processed']} processed, "
                 f"{stats['resolved']} resolved, "
                 f"{stats[ResolutionTier.UNRESOLVED.value]} unresolved "
                 f"(local id {stats[ResolutionTier.LOCAL_IDENTIFIER.value]}, "
                 f"local position {stats[ResolutionTier.LOCAL_POSITION.value]}, "
                 f"SIMBAD {stats[ResolutionTier.REMOTE_IDENTIFIER.value]}, "
                 f"VizieR {stats[ResolutionTier.REMOTE_CONE.value]}, "
                 f"tier errors {stats['tier_errors']})")

    @staticmethod
    def _describe(obj: CelestialObject) -> str:
        if obj.name:
            return obj.name
        if obj.has_source_id:
            return f"Gaia DR3 {obj.source_id}"
        return f"({obj.position.ra_deg:.5f}, {obj.position.dec_deg:+.5f})"
