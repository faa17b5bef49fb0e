"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from models.records import SensorEntry


class SensorEntryModel(BaseModel):
    """One relayed sensor reading as served to clients."""

    sensor: Any = Field(..., description="Named sensor channels, e.g. gx/gy/gz.")
    timestamp: int = Field(..., description="Milliseconds since the Unix epoch.")
    source: Optional[str] = Field(default=None, description="Adapter that produced the entry.")

    @classmethod
    def from_entry(cls, entry: SensorEntry) -> "SensorEntryModel":
        return cls.model_validate(entry.to_payload())


class SourceCounters(BaseModel):
    accepted: Dict[str, int] = Field(default_factory=dict)
    rejected: Dict[str, int] = Field(default_factory=dict)


class StatusResponse(BaseModel):
    """Liveness payload returned from the root endpoint."""

    status: str = "ok"
    message: str = "Hello!"
    history_size: int = Field(..., ge=0)
    history_capacity: int = Field(..., ge=1)
    connected_clients: int = Field(..., ge=0)
    sources: SourceCounters = Field(default_factory=SourceCounters)


class HealthResponse(BaseModel):
    status: str = "ok"
