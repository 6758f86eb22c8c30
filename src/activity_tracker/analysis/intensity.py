"""Intensity classification for finalized activities."""

from ..models.activity import Activity, IntensityLevel
from .profiles import IntensityThresholds, get_profile


def _exceeds(value: float, threshold) -> bool:
    return threshold is not None and value > threshold


def classify_intensity(activity: Activity) -> IntensityLevel:
    """
    Classify an activity into an intensity bucket.

    Uses the activity type's thresholds on average speed (km/h) and total
    duration (minutes). Either exceeding its threshold is enough.

    IntensityLevel.EXTREME is never returned; it exists for manual use.

    Args:
        activity: A finalized activity

    Returns:
        LOW, MODERATE or HIGH
    """
    thresholds: IntensityThresholds = get_profile(activity.activity_type).intensity
    speed_kmh = activity.average_speed * 3.6
    duration_min = activity.duration / 60

    if _exceeds(speed_kmh, thresholds.high_speed_kmh) or duration_min > thresholds.high_duration_min:
        return IntensityLevel.HIGH
    if (
        _exceeds(speed_kmh, thresholds.moderate_speed_kmh)
        or duration_min > thresholds.moderate_duration_min
    ):
        return IntensityLevel.MODERATE
    return IntensityLevel.LOW
