from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class QueryOptions(BaseModel):
    """Caller options for a health query.

    Field order here is not significant; the wire order is fixed by
    ``ServiceDescriptor``.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    near: str | None = Field("agent", description="Sort by round-trip time from this node")
    passing: bool | int = Field(1, description="Only return instances with passing checks")
    tags: list[str] = Field(default_factory=list, description="Required service tags")
    dc: str | None = Field(None, validation_alias=AliasChoices("dc", "datacenter"))
    node_meta: dict[str, str] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("node_meta", "node", "nodeMetadata"),
    )

    @field_validator("tags", mode="before")
    @classmethod
    def _single_tag(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("node_meta", mode="before")
    @classmethod
    def _stringify_meta(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(k): str(val) for k, val in v.items()}
        return v


class NodeRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    node: str = Field("", validation_alias=AliasChoices("Node", "node"))
    address: str = Field("", validation_alias=AliasChoices("Address", "address"))


class ServiceRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field("", validation_alias=AliasChoices("ID", "id"))
    address: str = Field("", validation_alias=AliasChoices("Address", "address"))
    port: int = Field(..., validation_alias=AliasChoices("Port", "port"))
    tags: list[str] | None = Field(None, validation_alias=AliasChoices("Tags", "tags"))


class HealthEntry(BaseModel):
    """One element of the /v1/health/service response array."""

    model_config = ConfigDict(extra="ignore")

    node: NodeRecord | None = Field(None, validation_alias=AliasChoices("Node", "node"))
    service: ServiceRecord = Field(..., validation_alias=AliasChoices("Service", "service"))
