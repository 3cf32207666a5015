# pnode_monitor/services/status.py
from collections import Counter
from typing import Iterable, List

import numpy as np

from ..schemas.common import AgeSummary, EnrichedNodeRecord, NodeRecord, NodeStatus, RosterStats, UNKNOWN
from ..utils.net import host_of
from ..utils.time import age_seconds

ACTIVE_WITHIN = 30     # s
OFFLINE_AFTER = 120    # s


def classify(last_seen_timestamp: float, now: float) -> NodeStatus:
    diff = age_seconds(last_seen_timestamp, now)
    if diff < ACTIVE_WITHIN:
        return "active"
    if diff < OFFLINE_AFTER:
        return "warning"
    return "offline"


def provisioned(records: Iterable[NodeRecord]) -> List[NodeRecord]:
    """Nodos con pubkey; los que no la tienen aún no están aprovisionados."""
    return [r for r in records if r.pubkey is not None]


def _age_summary(records: List[NodeRecord], now: float) -> AgeSummary | None:
    if not records:
        return None
    a = np.array([age_seconds(r.last_seen_timestamp, now) for r in records], dtype=float)
    return AgeSummary(
        mean=round(float(a.mean()), 3),
        p90=round(float(np.quantile(a, 0.9)), 3),
        max=float(a.max()),
    )


def summarize(records: List[EnrichedNodeRecord], now: float) -> RosterStats:
    statuses = Counter(classify(r.last_seen_timestamp, now) for r in records)
    versions = Counter(r.version for r in records)
    countries = Counter(r.country or UNKNOWN for r in records)
    return RosterStats(
        total=len(records),
        provisioned=len(provisioned(records)),
        active=statuses["active"],
        warning=statuses["warning"],
        offline=statuses["offline"],
        unique_ips=len({host_of(r.address) for r in records}),
        versions=dict(versions.most_common()),
        countries=dict(countries.most_common()),
        last_seen_age=_age_summary(records, now),
    )
