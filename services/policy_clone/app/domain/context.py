"""Caller-supplied inputs to a clone: reference snapshot and environment config."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .constants import DEFAULT_NAMESPACE_PREFIX
from .document import Identifier


class ReferenceEntity(BaseModel):
    """A record known to exist in the destination org."""

    id: Identifier = Field(default=None, alias="Id")
    external_id: Identifier = Field(default=None, alias="Id__c")
    name: Any = Field(default=None, alias="Name")
    tag: Any = Field(default=None, alias="Tag__c")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class ReferenceContext(BaseModel):
    """Snapshot of the destination environment's entities; read-only to the engine."""

    sounds: list[ReferenceEntity] = Field(default_factory=list)
    users: list[ReferenceEntity] = Field(default_factory=list)
    groups: list[ReferenceEntity] = Field(default_factory=list)
    skills: list[ReferenceEntity] = Field(default_factory=list)
    sf_users: list[ReferenceEntity] = Field(default_factory=list, alias="sfUsers")
    chatter_groups: list[ReferenceEntity] = Field(default_factory=list, alias="chatterGroups")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @classmethod
    def coerce(cls, value: "ReferenceContext | dict[str, Any] | None") -> "ReferenceContext":
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        return cls.model_validate(value)


class CloneConfig(BaseModel):
    connector_id: str | None = Field(default=None, alias="ConnectorId__c")
    dev_org_id: str | None = Field(default=None, alias="DevOrgId__c")
    organization_id: int | None = Field(default=None, alias="OrganizationId__c")
    namespace_prefix: str | None = Field(default=None, alias="namespacePrefix")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def effective_namespace_prefix(self) -> str:
        return self.namespace_prefix or DEFAULT_NAMESPACE_PREFIX

    def with_defaults(self, defaults: "CloneConfig") -> "CloneConfig":
        """Fill values this config leaves empty from ``defaults``."""
        merged = {
            name: getattr(self, name) if getattr(self, name) is not None else getattr(defaults, name)
            for name in type(self).model_fields
        }
        return CloneConfig(**merged)

    @classmethod
    def coerce(cls, value: "CloneConfig | dict[str, Any] | None") -> "CloneConfig":
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        return cls.model_validate(value)


__all__ = ["ReferenceEntity", "ReferenceContext", "CloneConfig"]
