# pnode_monitor/core/config.py
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import Field, field_validator
from pathlib import Path
from typing import Annotated
import json

DEFAULT_PRPC_ENDPOINTS = [
    "192.190.136.36",
    "192.190.136.37",
    "192.190.136.38",
    "161.97.97.41",
]


class Settings(BaseSettings):
    app_name: str = Field(default="pNode Monitor API", alias="APP_NAME")
    app_env: str = Field(default="dev", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Upstream pRPC
    prpc_endpoints: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_PRPC_ENDPOINTS), alias="PRPC_ENDPOINTS"
    )
    prpc_port: int = Field(default=6000, alias="PRPC_PORT")
    prpc_method: str = Field(default="get-pods", alias="PRPC_METHOD")
    prpc_timeout: float = Field(default=10.0, alias="PRPC_TIMEOUT")
    failover_delay_seconds: float = Field(default=0.75, ge=0, alias="FAILOVER_DELAY_SECONDS")

    # Roster cache
    roster_max_stale_seconds: float = Field(default=120.0, gt=0, alias="ROSTER_MAX_STALE_SECONDS")
    roster_refresh_seconds: float = Field(default=0.0, ge=0, alias="ROSTER_REFRESH_SECONDS")

    # Geo-IP
    geo_base: str = Field(default="https://ipapi.co", alias="GEO_BASE")
    geo_timeout: float = Field(default=5.0, alias="GEO_TIMEOUT")
    geo_ttl_seconds: float = Field(default=24 * 60 * 60, gt=0, alias="GEO_TTL_SECONDS")
    geo_cache_max_entries: int = Field(default=4096, gt=0, alias="GEO_CACHE_MAX_ENTRIES")
    geo_concurrency: int = Field(default=8, gt=0, alias="GEO_CONCURRENCY")

    user_agent: str = Field(default="pNode-Monitor/1.0", alias="USER_AGENT")
    cors_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[1] / ".env"),  # pnode_monitor/.env
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("prpc_endpoints", "cors_origins", mode="before")
    @classmethod
    def _split_list(cls, v):
        # acepta JSON ('["a","b"]') o lista separada por comas ("a,b")
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("["):
                v = json.loads(v)
            else:
                v = v.split(",")
        return [str(item).strip() for item in v if str(item).strip()]

    @field_validator("prpc_endpoints")
    @classmethod
    def _require_endpoints(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("PRPC_ENDPOINTS must list at least one endpoint")
        return v


settings = Settings()
