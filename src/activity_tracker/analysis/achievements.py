"""
Milestone achievements unlocked by a single activity.

Definitions are plain data; detection is a pure function of the activity.
"""

from typing import Any, Callable, Dict, List

from ..models.activity import Achievement, AchievementCategory, Activity


# =============================================================================
# Achievement Definitions
# =============================================================================

ACHIEVEMENT_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "code": "distance_5k",
        "title": "5K Runner",
        "description": "Completed your first 5km activity",
        "icon": "figure.run",
        "category": AchievementCategory.DISTANCE,
        "condition": lambda activity: activity.distance >= 5000,
    },
    {
        "code": "distance_10k",
        "title": "10K Champion",
        "description": "Conquered the 10km distance",
        "icon": "rosette",
        "category": AchievementCategory.DISTANCE,
        "condition": lambda activity: activity.distance >= 10000,
    },
    {
        "code": "endurance_1h",
        "title": "Endurance Warrior",
        "description": "Completed 1 hour of continuous activity",
        "icon": "timer",
        "category": AchievementCategory.DURATION,
        "condition": lambda activity: activity.duration >= 3600,
    },
]


def detect_achievements(activity: Activity) -> List[Achievement]:
    """
    Detect the achievements an activity unlocks.

    Thresholds are independent: a 10km activity unlocks both the 5K and the
    10K achievement. Ids and earned timestamps derive from the activity
    itself, so repeated calls return equal results.

    Args:
        activity: A finalized activity

    Returns:
        List of unlocked achievements, in definition order
    """
    earned_at = activity.end_time or activity.start_time
    unlocked: List[Achievement] = []

    for definition in ACHIEVEMENT_DEFINITIONS:
        condition: Callable[[Activity], bool] = definition["condition"]
        if not condition(activity):
            continue
        unlocked.append(
            Achievement(
                id=f"{definition['code']}:{activity.id}",
                title=definition["title"],
                description=definition["description"],
                icon=definition["icon"],
                earned_at=earned_at,
                category=definition["category"],
            )
        )

    return unlocked
