# pnode_monitor/services/roster_cache.py
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..schemas.common import NodeRecord
from ..utils.cache import CacheEntry
from ..utils.time import Clock, monotonic
from .errors import AllEndpointsFailed
from .failover import FailoverFetcher

MAX_STALE_AGE = 120.0


@dataclass(frozen=True)
class RosterResult:
    roster: List[NodeRecord] = field(default_factory=list)
    stale: bool = False
    cache_age_seconds: Optional[float] = None


class RosterCache:
    """
    Último roster bueno, servido como "stale" cuando fallan todos los endpoints.

    - Fetch OK            -> se reemplaza la entrada, (roster, stale=False)
    - Fallo total, entrada con edad < max_stale_age -> (roster cacheado, stale=True)
    - Fallo total, sin entrada o demasiado vieja    -> ([], stale=False)

    Un fallo nunca borra la entrada. Llamadas concurrentes esperan el mismo refresh
    en vuelo en lugar de lanzar cada una el failover completo.
    Con `refresh_seconds > 0` un roster más joven que eso se sirve sin ir a upstream.
    """

    def __init__(
        self,
        max_stale_age: float = MAX_STALE_AGE,
        refresh_seconds: float = 0.0,
        clock: Clock = monotonic,
    ):
        if max_stale_age <= 0:
            raise ValueError("max_stale_age must be positive")
        self.max_stale_age = max_stale_age
        self.refresh_seconds = refresh_seconds
        self._clock = clock
        self._entry: Optional[CacheEntry[List[NodeRecord]]] = None
        self._inflight: Optional[asyncio.Task] = None
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def entry(self) -> Optional[CacheEntry[List[NodeRecord]]]:
        return self._entry

    async def get_or_refresh(self, fetcher: FailoverFetcher) -> RosterResult:
        if self.refresh_seconds > 0 and self._entry is not None:
            age = self._entry.age(self._clock())
            if age < self.refresh_seconds:
                return RosterResult(roster=list(self._entry.value), stale=False, cache_age_seconds=age)

        task = self._inflight
        if task is None:
            task = asyncio.ensure_future(self._refresh(fetcher))
            self._inflight = task
            task.add_done_callback(self._clear_inflight)
        result = await asyncio.shield(task)
        return RosterResult(roster=list(result.roster), stale=result.stale, cache_age_seconds=result.cache_age_seconds)

    def _clear_inflight(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None

    async def _refresh(self, fetcher: FailoverFetcher) -> RosterResult:
        try:
            roster = await fetcher.fetch()
        except AllEndpointsFailed as ex:
            return self._fallback(ex)

        self._entry = CacheEntry(value=list(roster), fetched_at=self._clock())
        return RosterResult(roster=roster, stale=False, cache_age_seconds=0.0)

    def _fallback(self, ex: AllEndpointsFailed) -> RosterResult:
        if self._entry is None:
            self._logger.error(f"No roster available and no cache to fall back to ({ex})")
            return RosterResult()

        age = self._entry.age(self._clock())
        if age < self.max_stale_age:
            self._logger.warning(f"Serving stale roster ({len(self._entry.value)} nodes, {age:.0f}s old)")
            return RosterResult(roster=list(self._entry.value), stale=True, cache_age_seconds=age)

        self._logger.error(f"Cached roster too old to serve ({age:.0f}s > {self.max_stale_age:.0f}s)")
        return RosterResult()
