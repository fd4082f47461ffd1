"""
Momentum engine.
Converts logged activities into Energy, levels Momentum up, and decays it
through the shield timer. All time-dependent state is settled lazily from
(stored state, now); there is no background job.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional
from sqlalchemy.orm import Session

from momentum_backend.models import MomentumState, Settings, Goal
from momentum_backend.repositories.profile_repository import MomentumStateRepository, ProfileRepository
from momentum_backend.repositories.goal_repository import GoalRepository, ActivityReferenceRepository
from momentum_backend.repositories.settings_repository import SettingsRepository
from momentum_backend.services.date_service import DateService, utcnow
from momentum_backend.services.goal_service import GoalService
from momentum_backend.exceptions import ProfileNotFoundException

logger = logging.getLogger("momentum.engine")


class MomentumService:
    """Service for energy, momentum and shield calculations"""

    def __init__(self, db: Session):
        self.db = db
        self.state_repo = MomentumStateRepository()
        self.profile_repo = ProfileRepository()
        self.goal_repo = GoalRepository()
        self.catalog_repo = ActivityReferenceRepository()
        self.settings_repo = SettingsRepository()
        self.date_service = DateService()

    # ===== PURE CALCULATIONS =====

    @staticmethod
    def weekly_multiplier(completion_number: int, settings: Settings) -> int:
        """
        Multiplier for the Nth completion of a goal within one period.

        1st -> 1x, 2nd -> 2x, 3rd -> 4x ... capped at multiplier_cap.
        """
        if completion_number < 1:
            return 1
        # Exponent bounded so huge streaks never build giant integers
        exponent = min(completion_number - 1, settings.multiplier_cap.bit_length())
        return min(2 ** exponent, settings.multiplier_cap)

    @staticmethod
    def calculate_energy(completion_number: Optional[int], settings: Settings) -> tuple[int, int]:
        """
        Energy granted for one logged activity.

        Args:
            completion_number: N for goal-linked activities, None otherwise
            settings: Engine settings

        Returns:
            Tuple of (energy_gained, multiplier)
        """
        multiplier = 1
        if completion_number is not None:
            multiplier = MomentumService.weekly_multiplier(completion_number, settings)
        return settings.base_energy * multiplier, multiplier

    @staticmethod
    def energy_for_next_level(momentum: int, settings: Settings) -> int:
        """
        Energy needed to reach the next momentum level.

        Linear curve: level_energy_base + (momentum - baseline) * level_energy_step.
        Never below 1 so the level-up loop always terminates.
        """
        levels_above_baseline = max(0, momentum - settings.momentum_baseline)
        threshold = settings.level_energy_base + levels_above_baseline * settings.level_energy_step
        return max(1, threshold)

    @staticmethod
    def shield_duration(active_goals: List[Goal], settings: Settings) -> timedelta:
        """
        Shield timer length derived from the most frequent active goal.

        duration = base_window / max(frequency, 1), clamped to [min, max] hours.
        """
        top_frequency = max((goal.frequency for goal in active_goals), default=1)
        hours = settings.shield_base_window_hours / max(top_frequency, 1)
        hours = min(max(hours, settings.shield_min_hours), settings.shield_max_hours)
        return timedelta(hours=hours)

    def apply_energy(self, state: MomentumState, energy: int, settings: Settings) -> bool:
        """
        Add energy to a momentum state and run the level-up loop.

        A single large-multiplier activity can level up several times.

        Returns:
            True if at least one level was gained
        """
        state.current_energy += energy
        state.lifetime_energy += energy

        leveled_up = False
        threshold = self.energy_for_next_level(state.current_momentum, settings)
        while state.current_energy >= threshold:
            state.current_energy -= threshold
            state.current_momentum += 1
            state.lifetime_momentum = max(state.lifetime_momentum, state.current_momentum)
            leveled_up = True
            threshold = self.energy_for_next_level(state.current_momentum, settings)

        if leveled_up:
            logger.info(
                f"Momentum level-up for {state.profile_id}: now {state.current_momentum}"
            )
        return leveled_up

    @staticmethod
    def is_in_danger(state: MomentumState, now: datetime) -> bool:
        """Shield has expired but decay has not been applied yet"""
        return state.shield_expires_at is not None and now > state.shield_expires_at

    # ===== STATE ACCESS =====

    def get_or_create_state(self, profile_id: str, lock: bool = False) -> MomentumState:
        """Get momentum state for a profile, creating the baseline state if missing"""
        state = self.state_repo.get(self.db, profile_id, lock=lock)
        if state:
            return state

        settings = self.settings_repo.get(self.db)
        state = MomentumState(
            profile_id=profile_id,
            current_energy=0,
            current_momentum=settings.momentum_baseline,
            lifetime_energy=0,
            lifetime_momentum=settings.momentum_baseline,
            shield_timer_seconds=0,
        )
        return self.state_repo.create(self.db, state)

    def absorb_settings(self, state: MomentumState, settings: Settings) -> None:
        """
        Bring a stored state in line with the current engine settings.

        A raised momentum_baseline lifts momentum up to it, and a lowered
        level threshold turns surplus energy into levels.
        """
        if state.current_momentum < settings.momentum_baseline:
            state.current_momentum = settings.momentum_baseline
            state.lifetime_momentum = max(state.lifetime_momentum, state.current_momentum)
        self.apply_energy(state, 0, settings)

    def settle(self, state: MomentumState, now: datetime) -> bool:
        """
        Apply pending decay to a momentum state.

        The state is first brought in line with the current settings. Decay
        happens when the shield has expired, the UTC day on which it
        expired is over, and nothing was logged since the expiry. Exactly
        one momentum level is removed (never below baseline) and the shield
        is pushed past `now`, so settling again in the same window is a no-op.

        Args:
            state: Momentum state (should be locked by the caller)
            now: Evaluation time (naive UTC)

        Returns:
            True if a decay was applied
        """
        settings = self.settings_repo.get(self.db)
        self.absorb_settings(state, settings)

        expires_at = state.shield_expires_at
        if expires_at is None or now <= expires_at:
            return False

        if now < self.date_service.end_of_day(expires_at):
            return False  # Danger zone: grace period still running

        if state.last_activity_at is not None and state.last_activity_at > expires_at:
            return False

        old_momentum = state.current_momentum
        state.current_momentum = max(settings.momentum_baseline, state.current_momentum - 1)
        state.last_decay_at = now

        duration = self._current_shield_duration(state.profile_id, settings)
        state.shield_timer_seconds = int(duration.total_seconds())
        state.shield_expires_at = now + duration

        logger.info(
            f"Momentum decay for {state.profile_id}: {old_momentum} -> {state.current_momentum}"
        )
        return True

    def settle_for_profile(self, profile_id: str, now: Optional[datetime] = None) -> MomentumState:
        """
        Lock, settle and flush the momentum state of one profile.

        The caller commits.
        """
        now = now or utcnow()
        state = self.get_or_create_state(profile_id, lock=True)
        self.settle(state, now)
        self.db.flush()
        return state

    def record_activity(
        self,
        state: MomentumState,
        energy: int,
        now: datetime
    ) -> bool:
        """
        Apply one logged activity to a (locked, settled) momentum state.

        Adds energy, runs level-ups and resets the shield timer.

        Returns:
            True if the activity caused a level-up
        """
        settings = self.settings_repo.get(self.db)
        leveled_up = self.apply_energy(state, energy, settings)

        duration = self._current_shield_duration(state.profile_id, settings)
        state.shield_timer_seconds = int(duration.total_seconds())
        state.shield_expires_at = now + duration
        state.last_activity_at = now
        return leveled_up

    def snapshot(self, state: MomentumState, now: datetime) -> dict:
        """Momentum fields exposed alongside profiles and feed items"""
        settings = self.settings_repo.get(self.db)
        return {
            "current_energy": state.current_energy,
            "energy_for_next_level": self.energy_for_next_level(state.current_momentum, settings),
            "current_momentum": state.current_momentum,
            "lifetime_energy": state.lifetime_energy,
            "lifetime_momentum": state.lifetime_momentum,
            "is_in_danger": self.is_in_danger(state, now),
        }

    # ===== STATUS HEADER =====

    def get_user_status_header(self, profile_id: str, now: Optional[datetime] = None) -> dict:
        """
        Momentum header shown on every page of the client.

        Settles pending decay first, so the returned values are current.
        """
        now = now or utcnow()
        if not self.profile_repo.get_by_id(self.db, profile_id):
            raise ProfileNotFoundException(profile_id)

        try:
            state = self.settle_for_profile(profile_id, now)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        goal_service = GoalService(self.db)
        active_goals = goal_service.get_active_goals(profile_id)
        catalog = {
            entry.id: entry
            for entry in self.catalog_repo.get_by_ids(
                self.db, list({goal.activity_id for goal in active_goals})
            )
        }

        header = self.snapshot(state, now)
        header.update({
            "expires_at": state.shield_expires_at,
            "timer_duration": state.shield_timer_seconds,
            "weekly_goals_progress": [
                {
                    "goal_id": goal.id,
                    "activity_label": catalog[goal.activity_id].activity_label
                    if goal.activity_id in catalog else None,
                    "goal_description": goal.goal_description,
                    "completions_this_week": goal_service.completions_this_period(goal, now),
                    "target_frequency": goal.frequency,
                }
                for goal in active_goals
            ],
        })
        return header

    def _current_shield_duration(self, profile_id: str, settings: Settings) -> timedelta:
        active_goals = self.goal_repo.get_active_for_owner(self.db, profile_id)
        return self.shield_duration(active_goals, settings)
