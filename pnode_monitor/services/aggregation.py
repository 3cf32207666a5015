# pnode_monitor/services/aggregation.py
import asyncio
import logging
from typing import List, Optional

from ..schemas.common import EnrichedNodeRecord, EnrichedRoster, GeoInfo, NodeRecord, RosterStats
from ..utils.net import host_of
from ..utils.time import Clock, time_since, wall_clock
from .failover import FailoverFetcher
from .geo_cache import GeoCache
from .roster_cache import RosterCache
from .status import classify, summarize


class AggregationService:
    """
    Punto de entrada único para la capa de presentación.

    roster (FailoverFetcher + RosterCache) -> IP de cada nodo -> GeoCache -> merge.
    Mantiene el orden de upstream y no descarta registros: un fallo geo degrada a
    GeoInfo por defecto. Nunca lanza por indisponibilidad de upstream.
    """

    def __init__(
        self,
        fetcher: FailoverFetcher,
        roster_cache: RosterCache,
        geo_cache: GeoCache,
        geo_concurrency: int = 8,
        wall_clock: Clock = wall_clock,
    ):
        if geo_concurrency <= 0:
            raise ValueError("geo_concurrency must be positive")
        self.fetcher = fetcher
        self.roster_cache = roster_cache
        self.geo_cache = geo_cache
        self._geo_concurrency = geo_concurrency
        self._wall_clock = wall_clock
        self._logger = logging.getLogger(self.__class__.__name__)

    async def get_enriched_roster(self) -> EnrichedRoster:
        result = await self.roster_cache.get_or_refresh(self.fetcher)
        records = await self._enrich(result.roster)
        return EnrichedRoster(records=records, stale=result.stale, cache_age_seconds=result.cache_age_seconds)

    async def get_stats(self) -> RosterStats:
        roster = await self.get_enriched_roster()
        stats = summarize(roster.records, self._wall_clock())
        stats.stale = roster.stale
        stats.cache_age_seconds = roster.cache_age_seconds
        return stats

    async def _enrich(self, roster: List[NodeRecord]) -> List[EnrichedNodeRecord]:
        if not roster:
            return []
        sem = asyncio.Semaphore(self._geo_concurrency)

        async def _geo(record: NodeRecord) -> GeoInfo:
            async with sem:
                return await self.geo_cache.lookup(host_of(record.address))

        geos = await asyncio.gather(*(_geo(r) for r in roster))
        now = self._wall_clock()
        enriched = [merge(r, g, now) for r, g in zip(roster, geos)]
        self._logger.debug(f"Enriched {len(enriched)} records")
        return enriched


def merge(record: NodeRecord, geo: GeoInfo, now: Optional[float] = None) -> EnrichedNodeRecord:
    extra = {}
    if now is not None:
        extra = {
            "status": classify(record.last_seen_timestamp, now),
            "last_seen_ago": time_since(record.last_seen_timestamp, now),
        }
    return EnrichedNodeRecord(**record.model_dump(), **geo.model_dump(), **extra)
