"""Application configuration using Pydantic settings."""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .domain.constants import DEFAULT_NAMESPACE_PREFIX


class SecuritySettings(BaseModel):
    oidc_issuer_url: str | None = None
    oidc_audience: str | None = None
    role_claim: str = "roles"
    admin_role: str = "ADM"
    max_request_bytes: int = 10_000_000


class CloneDefaults(BaseModel):
    """Environment-specific identifiers stamped into cloned policies."""

    connector_id: str | None = None
    dev_org_id: str | None = None
    organization_id: int | None = None
    namespace_prefix: str = DEFAULT_NAMESPACE_PREFIX


class ObservabilitySettings(BaseModel):
    otel_service_name: str = "policy-clone"
    otel_exporter_otlp_endpoint: str | None = None
    log_level: str = "INFO"


class StorageSettings(BaseModel):
    database_url: str = Field(
        default="sqlite+aiosqlite:///./policy_clone.db",
        description="SQLAlchemy async database URL (Postgres 15 in production)",
    )
    s3_endpoint: str | None = None
    s3_region: str | None = None
    s3_bucket: str | None = None
    local_artifact_dir: str = "./.artifacts"


class PolicyCloneSettings(BaseSettings):
    security: SecuritySettings = SecuritySettings()
    clone: CloneDefaults = CloneDefaults()
    observability: ObservabilitySettings = ObservabilitySettings()
    storage: StorageSettings = StorageSettings()
    environment: Literal["dev", "qa", "prod"] | str = "dev"

    model_config = SettingsConfigDict(env_nested_delimiter="__", env_prefix="POLICY_CLONE_", case_sensitive=False)


@lru_cache(maxsize=1)
def get_settings(**kwargs: Any) -> PolicyCloneSettings:
    """Return cached settings instance."""
    return PolicyCloneSettings(**kwargs)


__all__ = ["PolicyCloneSettings", "CloneDefaults", "get_settings"]
