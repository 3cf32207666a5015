# pnode_monitor/services/ipapi.py
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from ..core.config import Settings
from ..schemas.common import GeoInfo, UNKNOWN
from ..utils.http import get_json
from .errors import GeoLookupError

GeoLookup = Callable[[str], Awaitable[GeoInfo]]


def _headers(user_agent: str) -> Dict[str, str]:
    """ipapi.co rechaza peticiones sin User-Agent."""
    return {"User-Agent": user_agent}


def parse_geo(data: Any) -> GeoInfo:
    """
    Payload ipapi.co → GeoInfo. Campos ausentes caen a "Unknown"/0.
    ipapi devuelve 200 con {"error": true, "reason": ...} en rate-limit o IPs reservadas.
    """
    if not isinstance(data, dict):
        raise GeoLookupError(f"unexpected payload type {type(data).__name__}")
    if data.get("error"):
        raise GeoLookupError(data.get("reason") or "provider error")

    def _num(v) -> float:
        try:
            return float(v) if v is not None else 0.0
        except (TypeError, ValueError):
            return 0.0

    return GeoInfo(
        city=data.get("city") or UNKNOWN,
        country=data.get("country_name") or UNKNOWN,
        latitude=_num(data.get("latitude")),
        longitude=_num(data.get("longitude")),
        provider=data.get("org") or UNKNOWN,
    )


async def lookup_geo(
    ip: str,
    base: str = "https://ipapi.co",
    user_agent: str = "pNode-Monitor/1.0",
    timeout: float = 5.0,
    client: Optional[httpx.AsyncClient] = None,
) -> GeoInfo:
    url = f"{base.rstrip('/')}/{ip}/json/"
    data = await get_json(url, headers=_headers(user_agent), timeout=timeout, client=client)
    return parse_geo(data)


def make_geo_lookup(settings: Settings, client: Optional[httpx.AsyncClient] = None) -> GeoLookup:
    async def _lookup(ip: str) -> GeoInfo:
        return await lookup_geo(
            ip,
            base=settings.geo_base,
            user_agent=settings.user_agent,
            timeout=settings.geo_timeout,
            client=client,
        )

    return _lookup
