"""
Live session API routes.

Provides endpoints for:
- Session commands (start, pause, resume, stop)
- Feeding location fixes and sensor errors from an external adapter
- Reading the live metrics
"""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from ..deps import get_activity_service
from ...exceptions import NoActiveSessionError
from ...models.activity import ActivityType, to_camel
from ...services.activity_service import ActivityService
from ...tracking.session import SessionSnapshot
from ...tracking.sources import LocationFix


router = APIRouter()

STOP_WAIT_TIMEOUT_SEC = 30


# ============================================================================
# Pydantic models for API
# ============================================================================

class StartSessionRequest(BaseModel):
    """Request body for starting a session."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    activity_type: ActivityType = Field(..., alias="type")
    name: Optional[str] = None


class FixRequest(BaseModel):
    """One location fix from a device adapter."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    timestamp: Optional[datetime] = None
    altitude: Optional[float] = None
    speed: Optional[float] = None
    heart_rate: Optional[int] = None


class SensorErrorRequest(BaseModel):
    message: str = "Location stream failed"


class SessionResponse(BaseModel):
    """API response model for the live session metrics."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    state: str
    activity_id: Optional[str] = None
    activity_type: Optional[ActivityType] = None
    name: Optional[str] = None
    start_time: Optional[datetime] = None
    duration: float = 0.0
    distance: float = 0.0
    pace: Optional[float] = None
    speed: float = 0.0
    max_speed: float = 0.0
    calories: int = 0
    elevation_gain: float = 0.0
    route_points: int = 0
    last_error: Optional[str] = None

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> "SessionResponse":
        return cls(
            state=snapshot.state.value,
            activity_id=snapshot.activity_id,
            activity_type=snapshot.activity_type,
            name=snapshot.name,
            start_time=snapshot.start_time,
            duration=snapshot.duration,
            distance=snapshot.distance,
            pace=snapshot.pace,
            speed=snapshot.speed,
            max_speed=snapshot.max_speed,
            calories=snapshot.calories,
            elevation_gain=snapshot.elevation_gain,
            route_points=snapshot.route_points,
            last_error=snapshot.last_error,
        )


# ============================================================================
# Endpoints
# ============================================================================

@router.post("/start", response_model=SessionResponse)
async def start_session(
    request: StartSessionRequest,
    service: ActivityService = Depends(get_activity_service),
):
    """Start tracking a new activity."""
    snapshot = service.start_session(request.activity_type, request.name).unwrap()
    return SessionResponse.from_snapshot(snapshot)


@router.post("/pause", response_model=SessionResponse)
async def pause_session(service: ActivityService = Depends(get_activity_service)):
    snapshot = service.pause_session().unwrap()
    return SessionResponse.from_snapshot(snapshot)


@router.post("/resume", response_model=SessionResponse)
async def resume_session(service: ActivityService = Depends(get_activity_service)):
    snapshot = service.resume_session().unwrap()
    return SessionResponse.from_snapshot(snapshot)


@router.post("/stop")
def stop_session(
    wait: bool = Query(False, description="Block until the activity is persisted"),
    service: ActivityService = Depends(get_activity_service),
) -> Dict[str, Any]:
    """
    Stop the live session and return the finalized activity.

    Persistence runs in the background; with wait=true the response also
    carries the persistence outcome. Plain def, so the wait happens on a
    worker thread instead of the event loop.
    """
    result, completion = service.stop_session()
    activity = result.unwrap()

    persistence = None
    if wait and completion is not None:
        persistence = completion.result(timeout=STOP_WAIT_TIMEOUT_SEC).to_dict()

    return {
        "activity": activity.model_dump(mode="json", by_alias=True),
        "persistence": persistence,
    }


@router.post("/fixes", response_model=SessionResponse)
async def push_fix(
    request: FixRequest,
    service: ActivityService = Depends(get_activity_service),
):
    """Feed a location fix into the live session."""
    fix = LocationFix(
        latitude=request.latitude,
        longitude=request.longitude,
        timestamp=request.timestamp or datetime.now(),
        altitude=request.altitude,
        speed=request.speed,
        heart_rate=request.heart_rate,
    )
    snapshot = service.push_fix(fix).unwrap()
    return SessionResponse.from_snapshot(snapshot)


@router.post("/errors", response_model=SessionResponse)
async def report_sensor_error(
    request: SensorErrorRequest,
    service: ActivityService = Depends(get_activity_service),
):
    """Report a location stream failure. The session keeps running."""
    snapshot = service.report_sensor_error(request.message).unwrap()
    return SessionResponse.from_snapshot(snapshot)


@router.get("/current", response_model=SessionResponse)
async def get_current_session(service: ActivityService = Depends(get_activity_service)):
    snapshot = service.current_session()
    if snapshot is None:
        raise NoActiveSessionError("No session has been started")
    return SessionResponse.from_snapshot(snapshot)
