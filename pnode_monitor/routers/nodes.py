# pnode_monitor/routers/nodes.py
from fastapi import APIRouter, Depends, Request

from ..schemas.common import RosterStats
from ..services.aggregation import AggregationService
from ..services.status import provisioned

router = APIRouter(prefix="/nodes", tags=["nodes"])


def get_service(request: Request) -> AggregationService:
    return request.app.state.service


@router.get("")
async def list_nodes(provisioned_only: bool = False, service: AggregationService = Depends(get_service)):
    """
    Roster enriquecido. Siempre 200:
      - fresco  -> [ {...}, ... ]
      - stale   -> {"records": [...], "stale": true, "cacheAgeSeconds": N}
      - sin datos (upstream caído y sin caché) -> []
    """
    roster = await service.get_enriched_roster()
    records = provisioned(roster.records) if provisioned_only else roster.records
    body = [r.model_dump() for r in records]

    if roster.stale:
        return {
            "records": body,
            "stale": True,
            "cacheAgeSeconds": int(roster.cache_age_seconds or 0),
        }
    return body


@router.get("/stats", response_model=RosterStats)
async def node_stats(service: AggregationService = Depends(get_service)):
    return await service.get_stats()
