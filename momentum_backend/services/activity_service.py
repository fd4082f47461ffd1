"""
Activity log service.
Appends completed activities together with the momentum update, and
manages bumps.
"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from momentum_backend.models import Activity, Bump, Goal, Profile
from momentum_backend.schemas import ActivityCreate
from momentum_backend.repositories.activity_repository import ActivityRepository, BumpRepository
from momentum_backend.repositories.goal_repository import GoalRepository, ActivityReferenceRepository
from momentum_backend.repositories.profile_repository import ProfileRepository
from momentum_backend.repositories.settings_repository import SettingsRepository
from momentum_backend.services.date_service import DateService, utcnow
from momentum_backend.services.goal_service import GoalService
from momentum_backend.services.momentum_service import MomentumService
from momentum_backend.services.social_service import SocialService
from momentum_backend.constants import LOCATION_HIDDEN_SENTINEL, PROFILE_ACTIVITY_PAGE_SIZE
from momentum_backend.exceptions import (
    ActivityNotFoundException,
    AlreadyBumpedException,
    ForbiddenException,
    GoalNotFoundException,
    InvalidTimestampException,
    NotBumpedException,
    ProfileNotFoundException,
    ValidationException,
)

logger = logging.getLogger("momentum.activities")


class ActivityService:
    """Service for logging activities and bumping them"""

    def __init__(self, db: Session):
        self.db = db
        self.activity_repo = ActivityRepository()
        self.bump_repo = BumpRepository()
        self.goal_repo = GoalRepository()
        self.catalog_repo = ActivityReferenceRepository()
        self.profile_repo = ProfileRepository()
        self.settings_repo = SettingsRepository()
        self.date_service = DateService()
        self.goal_service = GoalService(db)
        self.momentum_service = MomentumService(db)
        self.social_service = SocialService(db)

    def log_activity(
        self,
        owner_id: str,
        activity_data: ActivityCreate,
        now: Optional[datetime] = None
    ) -> dict:
        """
        Append an activity and update the owner's momentum in one transaction.

        Steps:
        1. Reject future timestamps
        2. Lock and settle the owner's momentum state
        3. Validate goal, catalog entry and units
        4. Rank the completion within its goal period and compute energy
        5. Store the activity, apply energy and reset the shield timer

        Args:
            owner_id: Caller identity
            activity_data: Activity payload
            now: Current time (naive UTC), defaults to utcnow()

        Returns:
            Dict with activity_id, energy_gained, multiplier and leveled_up
        """
        now = now or utcnow()
        timestamp = now
        if activity_data.timestamp is not None:
            timestamp = self.date_service.to_naive_utc(activity_data.timestamp)
            if timestamp > now:
                raise InvalidTimestampException(activity_data.timestamp)

        try:
            if not self.profile_repo.get_by_id(self.db, owner_id):
                raise ProfileNotFoundException(owner_id)

            state = self.momentum_service.get_or_create_state(owner_id, lock=True)
            self.momentum_service.settle(state, now)
            settings = self.settings_repo.get(self.db)

            goal = None
            activity_id = activity_data.activity_id
            if activity_data.goal_id is not None:
                goal = self._get_loggable_goal(owner_id, activity_data.goal_id)
                if activity_id is None:
                    activity_id = goal.activity_id
                elif activity_id != goal.activity_id:
                    raise ValidationException("activity_id", "Activity does not match the goal")
                if timestamp.date() < goal.start_date:
                    raise ValidationException("timestamp", "Activity predates the goal start date")
            elif settings.require_goal_link:
                raise ValidationException("goal_id", "Activities must be linked to an active goal")

            if activity_id is None:
                raise ValidationException("activity_id", "Activity is required")
            entry = self.catalog_repo.get_by_id(self.db, activity_id)
            if not entry:
                raise ValidationException("activity_id", f"Unknown activity {activity_id}")

            # Details are optional, but once given they must use a catalog unit
            units = entry.units
            has_details = activity_data.details_value is not None \
                or activity_data.details_units is not None
            if units and has_details and activity_data.details_units not in units:
                raise ValidationException(
                    "details_units",
                    f"'{activity_data.details_units}' is not allowed for "
                    f"{entry.activity_label} (allowed: {', '.join(units)})"
                )

            completion_number = None
            if goal is not None:
                completion_number = self.goal_service.register_completion(goal, timestamp, now)
            energy, multiplier = self.momentum_service.calculate_energy(completion_number, settings)

            value_numeric, value_text = self._split_details_value(activity_data.details_value)
            activity = Activity(
                owner_id=owner_id,
                goal_id=goal.id if goal else None,
                goal_description=goal.goal_description if goal else None,
                activity_id=activity_id,
                timestamp=timestamp,
                location_tag=activity_data.location_tag,
                location_is_hidden=activity_data.location_is_hidden,
                details_value_numeric=value_numeric,
                details_value_text=value_text,
                details_units=activity_data.details_units,
                proof_url=activity_data.proof_url,
                energy_gained=energy,
                multiplier=multiplier,
            )
            self.activity_repo.create(self.db, activity)

            leveled_up = self.momentum_service.record_activity(state, energy, now)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Activity {activity.id} logged by {owner_id}: "
            f"+{energy} energy (x{multiplier}), momentum {state.current_momentum}"
        )
        return {
            "activity_id": activity.id,
            "energy_gained": energy,
            "multiplier": multiplier,
            "leveled_up": leveled_up,
        }

    # ===== BUMPS =====

    def add_bump(self, viewer_id: str, activity_id: int) -> dict:
        """Bump an activity (once per viewer)"""
        try:
            self._get_visible_activity(viewer_id, activity_id)
            if self.bump_repo.get(self.db, activity_id, viewer_id):
                raise AlreadyBumpedException(activity_id)

            self.bump_repo.create(self.db, Bump(activity_id=activity_id, bumper_id=viewer_id))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise AlreadyBumpedException(activity_id)
        except Exception:
            self.db.rollback()
            raise

        return self._bump_state(viewer_id, activity_id)

    def remove_bump(self, viewer_id: str, activity_id: int) -> dict:
        """Remove the viewer's bump from an activity"""
        try:
            self._get_visible_activity(viewer_id, activity_id)
            bump = self.bump_repo.get(self.db, activity_id, viewer_id)
            if not bump:
                raise NotBumpedException(activity_id)

            self.bump_repo.delete(self.db, bump)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return self._bump_state(viewer_id, activity_id)

    # ===== READS =====

    def get_profile_activities(
        self,
        viewer_id: str,
        profile_id: str,
        limit: int = PROFILE_ACTIVITY_PAGE_SIZE,
        offset: int = 0
    ) -> List[dict]:
        """A profile's activities, newest first, gated by visibility"""
        profile = self.profile_repo.get_by_id(self.db, profile_id)
        if not profile:
            raise ProfileNotFoundException(profile_id)
        if not self.social_service.can_view(viewer_id, profile):
            raise ForbiddenException("This profile is private")

        activities = self.activity_repo.get_for_owners(self.db, [profile_id], limit, offset)
        return self.build_items(activities, viewer_id)

    def build_items(self, activities: List[Activity], viewer_id: Optional[str]) -> List[dict]:
        """
        Enrich activities for display.

        Adds catalog label/class, bump count and viewer_has_bumped, and
        masks hidden locations for everyone but the owner.
        """
        activity_ids = [activity.id for activity in activities]
        bump_counts = self.bump_repo.counts_for_activities(self.db, activity_ids)
        bumped = self.bump_repo.bumped_by(self.db, activity_ids, viewer_id)
        catalog = {
            entry.id: entry
            for entry in self.catalog_repo.get_by_ids(
                self.db, list({activity.activity_id for activity in activities})
            )
        }

        items = []
        for activity in activities:
            entry = catalog.get(activity.activity_id)
            location_tag = activity.location_tag
            if activity.location_is_hidden and viewer_id != activity.owner_id:
                location_tag = LOCATION_HIDDEN_SENTINEL

            items.append({
                "id": activity.id,
                "owner_id": activity.owner_id,
                "goal_id": activity.goal_id,
                "goal_description": activity.goal_description,
                "activity_id": activity.activity_id,
                "activity_label": entry.activity_label if entry else None,
                "activity_class": entry.activity_class if entry else None,
                "timestamp": activity.timestamp,
                "location_tag": location_tag,
                "location_is_hidden": activity.location_is_hidden,
                "details_value": activity.details_value,
                "details_units": activity.details_units,
                "proof_url": activity.proof_url,
                "energy_gained": activity.energy_gained,
                "multiplier": activity.multiplier,
                "bump_count": bump_counts.get(activity.id, 0),
                "viewer_has_bumped": activity.id in bumped,
            })
        return items

    # ===== HELPERS =====

    def _get_loggable_goal(self, owner_id: str, goal_id: int) -> Goal:
        goal = self.goal_repo.get_by_id(self.db, goal_id)
        if not goal:
            raise GoalNotFoundException(goal_id)
        if goal.owner_id != owner_id:
            raise ForbiddenException("You can only log against your own goals")
        if not goal.is_active:
            raise ValidationException("goal_id", "Goal is not active")
        return goal

    def _get_visible_activity(self, viewer_id: str, activity_id: int) -> Activity:
        if not self.profile_repo.get_by_id(self.db, viewer_id):
            raise ProfileNotFoundException(viewer_id)

        activity = self.activity_repo.get_by_id(self.db, activity_id)
        if not activity:
            raise ActivityNotFoundException(activity_id)

        owner: Profile = self.profile_repo.get_by_id(self.db, activity.owner_id)
        if not owner or not self.social_service.can_view(viewer_id, owner):
            raise ActivityNotFoundException(activity_id)
        return activity

    def _bump_state(self, viewer_id: str, activity_id: int) -> dict:
        return {
            "activity_id": activity_id,
            "bump_count": self.bump_repo.count_for_activity(self.db, activity_id),
            "viewer_has_bumped": self.bump_repo.get(self.db, activity_id, viewer_id) is not None,
        }

    @staticmethod
    def _split_details_value(value):
        """Store numbers and free text in separate columns"""
        if value is None:
            return None, None
        if isinstance(value, bool):
            return None, str(value)
        if isinstance(value, (int, float)):
            return float(value), None
        return None, str(value)
