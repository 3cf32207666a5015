# pnode_monitor/utils/http.py
import httpx
from typing import Any, Optional


async def get_json(
    url: str,
    headers: Optional[dict] = None,
    timeout: float = 30.0,
    client: Optional[httpx.AsyncClient] = None,
):
    if client is not None:
        r = await client.get(url, headers=headers, timeout=timeout)
        r.raise_for_status()
        return r.json()
    async with httpx.AsyncClient(timeout=timeout) as c:
        r = await c.get(url, headers=headers)
        r.raise_for_status()
        return r.json()


async def post_json(
    url: str,
    payload: Any,
    headers: Optional[dict] = None,
    timeout: float = 30.0,
    client: Optional[httpx.AsyncClient] = None,
):
    if client is not None:
        r = await client.post(url, json=payload, headers=headers, timeout=timeout)
        r.raise_for_status()
        return r.json()
    async with httpx.AsyncClient(timeout=timeout) as c:
        r = await c.post(url, json=payload, headers=headers)
        r.raise_for_status()
        return r.json()
