"""
Goal management service.
Handles weekly recurring goals, goal-slot capacity and lazy period rollover.
"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from momentum_backend.models import Goal, Profile
from momentum_backend.schemas import GoalCreate, GoalUpdate
from momentum_backend.repositories.goal_repository import (
    GoalRepository, ActivityReferenceRepository
)
from momentum_backend.repositories.activity_repository import ActivityRepository
from momentum_backend.repositories.profile_repository import ProfileRepository
from momentum_backend.services.date_service import DateService, utcnow
from momentum_backend.constants import GOAL_PERIOD_WEEKLY
from momentum_backend.exceptions import (
    CapacityExceededException,
    ForbiddenException,
    GoalNotFoundException,
    ProfileNotFoundException,
    ValidationException,
)

logger = logging.getLogger("momentum.goals")


class GoalService:
    """Service for managing weekly goals"""

    def __init__(self, db: Session):
        self.db = db
        self.goal_repo = GoalRepository()
        self.catalog_repo = ActivityReferenceRepository()
        self.activity_repo = ActivityRepository()
        self.profile_repo = ProfileRepository()
        self.date_service = DateService()

    # ===== PERIOD COUNTERS =====

    def completions_this_period(self, goal: Goal, now: datetime) -> int:
        """
        Completions counted in the goal's current period.

        The stored counter belongs to goal.period_index; a stale index means
        the period rolled over and nothing was logged since.
        """
        current_index = self.date_service.period_index(goal.start_date, now)
        if goal.period_index != current_index:
            return 0
        return goal.completions_for_period

    def register_completion(self, goal: Goal, at: datetime, now: datetime) -> int:
        """
        Count one more completion of a goal and return its rank N.

        Completions in the current period advance the rolling counter
        (resetting it first if the period rolled over). A back-dated
        completion in an earlier period is ranked against the activities
        already logged in that period and leaves the counter alone.

        Must be called before the new Activity row is flushed.

        Args:
            goal: Goal being completed (owner already verified)
            at: Activity timestamp (naive UTC)
            now: Current time (naive UTC)

        Returns:
            N, the 1-based rank of this completion within its period
        """
        at_index = self.date_service.period_index(goal.start_date, at)
        current_index = self.date_service.period_index(goal.start_date, now)

        if at_index == current_index:
            if goal.period_index != current_index:
                goal.period_index = current_index
                goal.completions_for_period = 0
            goal.completions_for_period += 1
            return goal.completions_for_period

        range_start, range_end = self.date_service.period_range(goal.start_date, at_index)
        logged = self.activity_repo.count_for_goal_in_range(
            self.db, goal.id, range_start, range_end
        )
        return logged + 1

    def _rebuild_period_counter(self, goal: Goal, now: datetime) -> None:
        """Recount the current period's completions from the activity log"""
        current_index = self.date_service.period_index(goal.start_date, now)
        goal.period_index = max(0, current_index)
        if current_index < 0:
            goal.completions_for_period = 0
            return

        range_start, range_end = self.date_service.period_range(goal.start_date, current_index)
        goal.completions_for_period = self.activity_repo.count_for_goal_in_range(
            self.db, goal.id, range_start, range_end
        )

    # ===== CRUD =====

    def get_manage_goals_data(self, owner_id: str, now: Optional[datetime] = None) -> dict:
        """
        Goal slots plus every goal of the owner with its catalog label.

        Returns:
            Dict with goal_slots, active_count and goals
        """
        now = now or utcnow()
        profile = self._get_profile(owner_id)
        goals = self.goal_repo.get_for_owner(self.db, owner_id)

        catalog = {
            entry.id: entry
            for entry in self.catalog_repo.get_by_ids(
                self.db, list({goal.activity_id for goal in goals})
            )
        }

        return {
            "goal_slots": profile.goal_slots,
            "active_count": sum(1 for goal in goals if goal.is_active),
            "goals": [self.to_dict(goal, catalog.get(goal.activity_id), now) for goal in goals],
        }

    def create_goal(
        self,
        owner_id: str,
        goal_data: GoalCreate,
        now: Optional[datetime] = None
    ) -> Goal:
        """Create a new active goal (checks goal-slot capacity)"""
        now = now or utcnow()
        try:
            profile = self._get_profile(owner_id, lock=True)
            self._validate_activity(goal_data.activity_id)
            self._validate_frequency(goal_data.frequency)
            self._check_capacity(profile)

            start_date = goal_data.start_date or now.date()
            goal = Goal(
                owner_id=owner_id,
                activity_id=goal_data.activity_id,
                goal_description=goal_data.goal_description,
                frequency=goal_data.frequency,
                period=GOAL_PERIOD_WEEKLY,
                start_date=start_date,
                is_active=True,
                completions_for_period=0,
                period_index=max(0, self.date_service.period_index(start_date, now)),
            )
            self.goal_repo.create(self.db, goal)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(goal)
        logger.info(f"Goal {goal.id} created for {owner_id}")
        return goal

    def update_goal(
        self,
        owner_id: str,
        goal_id: int,
        goal_update: GoalUpdate,
        now: Optional[datetime] = None
    ) -> Goal:
        """
        Update an existing goal.

        The completion counter is kept. Moving start_date shifts the period
        boundaries, so the counter is then rebuilt from the activities
        logged in the new current period.
        """
        now = now or utcnow()
        try:
            goal = self._get_owned_goal(owner_id, goal_id)
            old_start_date = goal.start_date

            update_data = goal_update.model_dump(exclude_unset=True)
            if "activity_id" in update_data:
                self._validate_activity(update_data["activity_id"])
            if "frequency" in update_data:
                self._validate_frequency(update_data["frequency"])

            for key, value in update_data.items():
                if value is None and key in ("activity_id", "frequency", "start_date"):
                    continue
                setattr(goal, key, value)

            if goal.start_date != old_start_date:
                self._rebuild_period_counter(goal, now)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(goal)
        return goal


    def toggle_goal_active(self, owner_id: str, goal_id: int, new_active: bool) -> Goal:
        """Activate or deactivate a goal (activation checks capacity)"""
        try:
            profile = self._get_profile(owner_id, lock=True)
            goal = self._get_owned_goal(owner_id, goal_id)

            if new_active and not goal.is_active:
                self._check_capacity(profile)

            goal.is_active = new_active
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(goal)
        return goal

    def delete_goal(self, owner_id: str, goal_id: int) -> int:
        """
        Delete an inactive goal.

        Returns:
            ID of the deleted goal
        """
        try:
            goal = self._get_owned_goal(owner_id, goal_id)
            if goal.is_active:
                raise ValidationException("goal_id", "Deactivate the goal before deleting it")

            self.goal_repo.delete(self.db, goal)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Goal {goal_id} deleted by {owner_id}")
        return goal_id

    def get_active_goals(self, owner_id: str) -> List[Goal]:
        return self.goal_repo.get_active_for_owner(self.db, owner_id)

    def to_dict(self, goal: Goal, activity=None, now: Optional[datetime] = None) -> dict:
        """Goal as a response dict with its current-period completions"""
        now = now or utcnow()
        return {
            "id": goal.id,
            "owner_id": goal.owner_id,
            "activity_id": goal.activity_id,
            "goal_description": goal.goal_description,
            "frequency": goal.frequency,
            "period": goal.period,
            "start_date": goal.start_date,
            "is_active": goal.is_active,
            "completions_for_period": self.completions_this_period(goal, now),
            "period_index": max(0, self.date_service.period_index(goal.start_date, now)),
            "activity_label": activity.activity_label if activity else None,
            "activity_class": activity.activity_class if activity else None,
            "created_at": goal.created_at,
        }

    # ===== HELPERS =====

    def _get_profile(self, profile_id: str, lock: bool = False) -> Profile:
        profile = self.profile_repo.get_by_id(self.db, profile_id, lock=lock)
        if not profile:
            raise ProfileNotFoundException(profile_id)
        return profile

    def _get_owned_goal(self, owner_id: str, goal_id: int) -> Goal:
        goal = self.goal_repo.get_by_id(self.db, goal_id)
        if not goal:
            raise GoalNotFoundException(goal_id)
        if goal.owner_id != owner_id:
            raise ForbiddenException("You can only manage your own goals")
        return goal

    def _validate_activity(self, activity_id: int) -> None:
        if activity_id is None or not self.catalog_repo.get_by_id(self.db, activity_id):
            raise ValidationException("activity_id", f"Unknown activity {activity_id}")

    @staticmethod
    def _validate_frequency(frequency: int) -> None:
        if frequency is None or frequency <= 0:
            raise ValidationException("frequency", "Frequency must be greater than 0")

    def _check_capacity(self, profile: Profile) -> None:
        active_count = self.goal_repo.count_active(self.db, profile.id)
        if active_count >= profile.goal_slots:
            logger.info(
                f"Goal capacity reached for {profile.id}: {active_count}/{profile.goal_slots}"
            )
            raise CapacityExceededException(profile.goal_slots)
