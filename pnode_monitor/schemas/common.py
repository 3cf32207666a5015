from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Literal

NodeStatus = Literal["active", "warning", "offline"]

UNKNOWN = "Unknown"


class NodeRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    address: str
    pubkey: str | None = None
    version: str = UNKNOWN
    last_seen_timestamp: int = 0

    # Un pod incompleto (p. ej. aún sin aprovisionar) no debe invalidar todo el roster
    @field_validator("version", mode="before")
    @classmethod
    def _version_or_unknown(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return UNKNOWN
        return str(v)

    @field_validator("last_seen_timestamp", mode="before")
    @classmethod
    def _whole_seconds(cls, v):
        if v is None:
            return 0
        if isinstance(v, float):
            return int(v)
        return v


class GeoInfo(BaseModel):
    city: str = UNKNOWN
    country: str = UNKNOWN
    latitude: float = 0
    longitude: float = 0
    provider: str = UNKNOWN


DEFAULT_GEO = GeoInfo()


class EnrichedNodeRecord(NodeRecord, GeoInfo):
    status: NodeStatus | None = None
    last_seen_ago: str | None = None


class EnrichedRoster(BaseModel):
    records: list[EnrichedNodeRecord]
    stale: bool = False
    cache_age_seconds: float | None = None


class AgeSummary(BaseModel):
    mean: float
    p90: float
    max: float


class RosterStats(BaseModel):
    total: int
    provisioned: int
    active: int
    warning: int
    offline: int
    unique_ips: int
    versions: dict[str, int] = Field(default_factory=dict)
    countries: dict[str, int] = Field(default_factory=dict)
    last_seen_age: AgeSummary | None = None
    stale: bool = False
    cache_age_seconds: float | None = None
