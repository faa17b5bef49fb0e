"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from app.schemas import HealthResponse, SensorEntryModel, SourceCounters, StatusResponse
from services.relay import SensorRelay, build_default_relay

router = APIRouter()


def get_relay() -> SensorRelay:
    return build_default_relay()


@router.get(
    "/",
    response_model=StatusResponse,
    summary="Liveness and relay status.",
    status_code=status.HTTP_200_OK,
)
async def root(relay: SensorRelay = Depends(get_relay)) -> StatusResponse:
    return StatusResponse(
        history_size=len(relay.history),
        history_capacity=relay.history.capacity,
        connected_clients=relay.broadcaster.client_count,
        sources=SourceCounters(**relay.stats()),
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> HealthResponse:
    return HealthResponse()


@router.get(
    "/sensor-data",
    response_model=List[SensorEntryModel],
    summary="Every entry currently held in history, oldest first.",
)
async def sensor_data(relay: SensorRelay = Depends(get_relay)) -> List[SensorEntryModel]:
    return [SensorEntryModel.from_entry(entry) for entry in relay.snapshot()]
