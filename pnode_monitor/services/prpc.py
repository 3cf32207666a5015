# pnode_monitor/services/prpc.py
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..core.config import Settings
from ..schemas.common import NodeRecord
from ..utils.http import post_json
from .errors import PrpcError

logger = logging.getLogger(__name__)

RosterFetch = Callable[[str], Awaitable[List[NodeRecord]]]


def rpc_url(endpoint: str, port: int = 6000) -> str:
    """
    Endpoint configurado → URL JSON-RPC.
      "1.2.3.4"            -> http://1.2.3.4:6000/rpc
      "1.2.3.4:7000"       -> http://1.2.3.4:7000/rpc
      "https://host/rpc"   -> tal cual
    """
    if endpoint.startswith(("http://", "https://")):
        return endpoint
    if ":" in endpoint:
        return f"http://{endpoint}/rpc"
    return f"http://{endpoint}:{port}/rpc"


def parse_pods(body: Any) -> List[NodeRecord]:
    if not isinstance(body, dict):
        raise PrpcError(f"unexpected response type {type(body).__name__}")
    if body.get("error"):
        err = body["error"]
        msg = err.get("message") if isinstance(err, dict) else err
        raise PrpcError(f"rpc error: {msg}")

    result = body.get("result")
    pods = result.get("pods") if isinstance(result, dict) else None
    if not isinstance(pods, list):
        raise PrpcError("response has no result.pods list")

    try:
        return [NodeRecord.model_validate(p) for p in pods]
    except ValidationError as e:
        raise PrpcError(f"malformed pod record: {e.error_count()} validation error(s)") from e


async def fetch_roster(
    endpoint: str,
    port: int = 6000,
    method: str = "get-pods",
    timeout: float = 10.0,
    client: Optional[httpx.AsyncClient] = None,
) -> List[NodeRecord]:
    """
    Llama `method` (get-pods / get-pods-with-stats) sobre un endpoint pRPC.
    Errores de red / HTTP se propagan como httpx.HTTPError; payloads raros como PrpcError.
    """
    url = rpc_url(endpoint, port)
    payload: Dict[str, Any] = {"jsonrpc": "2.0", "method": method, "id": 1}
    body = await post_json(url, payload, timeout=timeout, client=client)
    pods = parse_pods(body)
    logger.debug(f"Fetched {len(pods)} pods from {url}")
    return pods


def make_roster_fetch(settings: Settings, client: Optional[httpx.AsyncClient] = None) -> RosterFetch:
    async def _fetch(endpoint: str) -> List[NodeRecord]:
        return await fetch_roster(
            endpoint,
            port=settings.prpc_port,
            method=settings.prpc_method,
            timeout=settings.prpc_timeout,
            client=client,
        )

    return _fetch
