"""
Activity history API routes.

Deleting an activity does not touch statistics; use
POST /api/v1/statistics/rebuild afterwards.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, ConfigDict

from ..deps import get_activity_service
from ...models.activity import Activity, ActivitySortOrder, ActivityType, to_camel
from ...services.activity_service import ActivityService


router = APIRouter()

SKIPPED_RECORDS_HEADER = "X-Skipped-Records"


class ActivityUpdateRequest(BaseModel):
    """Editable fields of a stored activity."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    notes: Optional[str] = None


@router.get("", response_model=List[Activity])
async def list_activities(
    response: Response,
    search: Optional[str] = Query(None, description="Match on name or activity type"),
    activity_type: Optional[ActivityType] = Query(None, alias="type"),
    sort: ActivitySortOrder = Query(ActivitySortOrder.DATE_DESCENDING),
    service: ActivityService = Depends(get_activity_service),
):
    """
    List the activity history.

    Corrupt stored records are left out; their count is returned in the
    X-Skipped-Records header.
    """
    listing = service.list_activities(search, activity_type, sort).unwrap()
    response.headers[SKIPPED_RECORDS_HEADER] = str(listing.skipped)
    return listing.activities


@router.get("/{activity_id}", response_model=Activity)
async def get_activity(
    activity_id: str,
    service: ActivityService = Depends(get_activity_service),
):
    return service.get_activity(activity_id).unwrap()


@router.patch("/{activity_id}", response_model=Activity)
async def update_activity(
    activity_id: str,
    request: ActivityUpdateRequest,
    service: ActivityService = Depends(get_activity_service),
):
    """Rename an activity or edit its notes."""
    return service.update_activity(activity_id, request.name, request.notes).unwrap()


@router.delete("/{activity_id}")
async def delete_activity(
    activity_id: str,
    service: ActivityService = Depends(get_activity_service),
):
    service.delete_activity(activity_id).unwrap()
    return {"deleted": True, "id": activity_id}
