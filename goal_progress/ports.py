"""
Collaborator interfaces consumed by the engine.

Goal, habit and habit log stores are read-only from the engine's point of
view. The division store is the only one the engine writes to.
"""
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from goal_progress.models import Goal, GoalDivision, Habit, HabitLogEntry


class GoalStore(ABC):
    @abstractmethod
    def get_goal_by_id(self, goal_id: int) -> Optional[Goal]:
        pass

    @abstractmethod
    def get_goals_by_ids(self, goal_ids: Iterable[int]) -> List[Goal]:
        """Batched lookup; unknown ids are omitted from the result."""
        pass


class HabitStore(ABC):
    @abstractmethod
    def get_habit(self, habit_id: int, owner_id: int) -> Optional[Habit]:
        """Return the habit only if it belongs to owner_id."""
        pass

    @abstractmethod
    def get_habits_by_ids(self, habit_ids: Iterable[int]) -> List[Habit]:
        pass


class HabitLogStore(ABC):
    @abstractmethod
    def get_habit_logs(
        self,
        habit_id: int,
        start_date: date,
        end_date: date,
        owner_id: Optional[int] = None,
    ) -> List[HabitLogEntry]:
        """Entries whose date_key lies in [start_date, end_date], inclusive."""
        pass


class DivisionStore(ABC):
    @abstractmethod
    def find_division(self, goal_id: int) -> Optional[GoalDivision]:
        pass

    @abstractmethod
    def upsert_division(self, goal_id: int, fields: Dict[str, Any]) -> GoalDivision:
        """
        Merge fields into the stored division, creating it on first write.

        Accepted keys: sub_goals, habit_links, last_computed.
        """
        pass
