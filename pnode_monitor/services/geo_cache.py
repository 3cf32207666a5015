# pnode_monitor/services/geo_cache.py
import asyncio
import logging
from collections import OrderedDict
from typing import Dict, Optional

from ..schemas.common import DEFAULT_GEO, GeoInfo
from ..utils.cache import CacheEntry
from ..utils.time import Clock, monotonic
from .ipapi import GeoLookup

GEO_TTL = 24 * 60 * 60


class GeoCache:
    """
    Caché geo-IP por IP con TTL fijo y tope LRU.

    `lookup()` nunca propaga errores del proveedor: un fallo se cachea (y devuelve)
    como GeoInfo por defecto, así que una IP problemática se reintenta una vez por TTL.
    Lookups concurrentes de la misma IP comparten una sola llamada saliente.
    """

    def __init__(
        self,
        lookup: GeoLookup,
        ttl_seconds: float = GEO_TTL,
        max_entries: int = 4096,
        clock: Clock = monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._lookup = lookup
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry[GeoInfo]]" = OrderedDict()
        self._inflight: Dict[str, asyncio.Task] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, ip: str) -> bool:
        return ip in self._entries

    def peek(self, ip: str) -> Optional[CacheEntry[GeoInfo]]:
        return self._entries.get(ip)

    def _is_fresh(self, entry: CacheEntry[GeoInfo], now: float) -> bool:
        return entry.age(now) < self._ttl

    async def lookup(self, ip: str) -> GeoInfo:
        ip = (ip or "").strip()
        if not ip:
            # sin host: ipapi.co//json/ devolvería la ubicación del propio servidor
            return DEFAULT_GEO

        entry = self._entries.get(ip)
        if entry is not None and self._is_fresh(entry, self._clock()):
            self._entries.move_to_end(ip)
            return entry.value

        task = self._inflight.get(ip)
        if task is None:
            task = asyncio.ensure_future(self._refresh(ip))
            self._inflight[ip] = task

            def _done(t: asyncio.Task, ip: str = ip) -> None:
                if self._inflight.get(ip) is t:
                    del self._inflight[ip]

            task.add_done_callback(_done)
        return await asyncio.shield(task)

    async def _refresh(self, ip: str) -> GeoInfo:
        try:
            geo = await self._lookup(ip)
        except Exception as ex:
            self._logger.info(f"Geo lookup failed for {ip}: {ex!r}; using defaults")
            geo = DEFAULT_GEO
        self._store(ip, geo)
        return geo

    def _store(self, ip: str, geo: GeoInfo) -> None:
        self._entries[ip] = CacheEntry(value=geo, fetched_at=self._clock())
        self._entries.move_to_end(ip)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            self._logger.debug(f"Evicted geo entry for {evicted}")
