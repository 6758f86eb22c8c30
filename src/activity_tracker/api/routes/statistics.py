"""
Statistics API routes.

Provides endpoints for:
- The aggregate statistics and weekly/monthly summaries
- Personal records and active streaks
- Progress series and goal progress
- Consistency check and rebuild from history
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from ..deps import get_activity_service
from ...models.activity import ActivityType
from ...models.statistics import (
    FitnessGoal,
    GoalProgress,
    MonthlySummary,
    PersonalRecord,
    ProgressSeries,
    Streak,
    UserStatistics,
    WeeklySummary,
)
from ...services.activity_service import ActivityService


router = APIRouter()


@router.get("", response_model=UserStatistics)
async def get_statistics(service: ActivityService = Depends(get_activity_service)):
    """Get the full statistics aggregate."""
    return service.get_statistics()


@router.get("/weekly", response_model=WeeklySummary)
async def get_weekly_summary(service: ActivityService = Depends(get_activity_service)):
    return service.weekly_summary()


@router.get("/monthly", response_model=MonthlySummary)
async def get_monthly_summary(service: ActivityService = Depends(get_activity_service)):
    return service.monthly_summary()


@router.get("/records", response_model=List[PersonalRecord])
async def get_personal_records(
    activity_type: Optional[ActivityType] = Query(None, alias="type"),
    service: ActivityService = Depends(get_activity_service),
):
    """Get personal records, optionally for one activity type."""
    return service.personal_records(activity_type)


@router.get("/streaks", response_model=List[Streak])
async def get_active_streaks(service: ActivityService = Depends(get_activity_service)):
    return service.active_streaks()


@router.get("/progress", response_model=ProgressSeries)
async def get_progress(service: ActivityService = Depends(get_activity_service)):
    """Daily (7 days), weekly (4 weeks) and monthly (12 months) progress."""
    return service.progress().unwrap()


@router.post("/goals/progress", response_model=List[GoalProgress])
async def get_goal_progress(
    goals: List[FitnessGoal],
    service: ActivityService = Depends(get_activity_service),
):
    """Compute progress for the given goals from the activity history."""
    return service.goal_progress(goals).unwrap()


@router.post("/rebuild", response_model=UserStatistics)
async def rebuild_statistics(service: ActivityService = Depends(get_activity_service)):
    """Recompute all statistics from the activity history."""
    return service.rebuild_statistics().unwrap()


@router.post("/verify")
async def verify_statistics(
    service: ActivityService = Depends(get_activity_service),
) -> Dict[str, Any]:
    """Check statistics consistency, rebuilding them if issues are found."""
    return service.verify_statistics().unwrap()
