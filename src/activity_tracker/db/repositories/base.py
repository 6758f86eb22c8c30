"""Repository contract for the activity history.

The engine only depends on these abstract classes; the storage technology
behind them is up to the implementation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from ...models.activity import Activity


@dataclass
class ActivityLoadResult:
    """Outcome of loading the full history.

    Corrupt records are skipped individually, so a load can succeed
    partially; skipped says how many records were left out.
    """

    activities: List[Activity] = field(default_factory=list)
    skipped: int = 0
    skipped_ids: List[str] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return self.skipped > 0


class ActivityRepository(ABC):
    """
    Abstract base class for activity storage.

    Implementations must raise PersistenceError for storage failures and
    ActivityNotFoundError for unknown ids.
    """

    @abstractmethod
    def save(self, activity: Activity) -> Activity:
        """
        Save an activity, replacing any stored activity with the same id.

        Args:
            activity: The finalized activity to save

        Returns:
            The saved activity
        """
        pass

    @abstractmethod
    def load_all(self) -> ActivityLoadResult:
        """
        Load every stored activity, newest first.

        Returns:
            ActivityLoadResult with the valid activities and the skip count
        """
        pass

    @abstractmethod
    def load_by_id(self, activity_id: str) -> Activity:
        """
        Load a single activity.

        Args:
            activity_id: The activity ID

        Returns:
            The activity

        Raises:
            ActivityNotFoundError: If no activity has that id
        """
        pass

    @abstractmethod
    def delete(self, activity_id: str) -> bool:
        """
        Delete an activity by its ID.

        Args:
            activity_id: The activity ID to delete

        Returns:
            True if the activity was deleted, False if not found
        """
        pass

    @abstractmethod
    def load_in_range(self, start: datetime, end: datetime) -> List[Activity]:
        """
        Load activities whose start time lies in [start, end].

        Args:
            start: Inclusive lower bound
            end: Inclusive upper bound

        Returns:
            Matching activities, oldest first
        """
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of stored activities, corrupt ones included."""
        pass

    @abstractmethod
    def exists(self, activity_id: str) -> bool:
        pass

    @abstractmethod
    def clear_all(self) -> int:
        """
        Delete every stored activity.

        Returns:
            Number of activities deleted
        """
        pass
