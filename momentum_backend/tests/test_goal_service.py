"""
Tests for GoalService.

Tests cover:
1. Goal-slot capacity on create and toggle
2. Update and delete rules
3. Lazy period rollover and back-dated completions
"""
import pytest
from datetime import timedelta

from momentum_backend.models import Activity
from momentum_backend.schemas import ActivityCreate, GoalCreate, GoalUpdate
from momentum_backend.services.activity_service import ActivityService
from momentum_backend.services.goal_service import GoalService
from momentum_backend.exceptions import (
    CapacityExceededException,
    ForbiddenException,
    GoalNotFoundException,
    ValidationException,
)


class TestGoalCapacity:
    """Active goals never exceed goal_slots"""

    def test_second_goal_rejected_with_one_slot(self, db_session, create_profile, create_goal):
        profile = create_profile("slots")
        create_goal(profile)

        with pytest.raises(CapacityExceededException):
            create_goal(profile, label="Yoga", frequency=2)

    def test_extra_slots_allow_more_goals(self, db_session, create_profile, create_goal):
        profile = create_profile("multi", goal_slots=2)
        create_goal(profile)
        create_goal(profile, label="Yoga", frequency=2)

        data = GoalService(db_session).get_manage_goals_data(profile.id)
        assert data["goal_slots"] == 2
        assert data["active_count"] == 2

    def test_reactivation_checks_capacity(self, db_session, create_profile, create_goal):
        profile = create_profile("toggler")
        first = create_goal(profile)
        service = GoalService(db_session)

        service.toggle_goal_active(profile.id, first.id, False)
        create_goal(profile, label="Yoga", frequency=2)

        with pytest.raises(CapacityExceededException):
            service.toggle_goal_active(profile.id, first.id, True)
        db_session.refresh(first)
        assert first.is_active is False

    def test_deactivating_is_always_allowed(self, db_session, create_profile, create_goal):
        profile = create_profile("relax")
        goal = create_goal(profile)

        goal = GoalService(db_session).toggle_goal_active(profile.id, goal.id, False)
        assert goal.is_active is False


class TestGoalValidation:
    """Tests for create/update validation"""

    def test_unknown_activity(self, db_session, create_profile, catalog, now):
        profile = create_profile("unknown")

        with pytest.raises(ValidationException):
            GoalService(db_session).create_goal(
                profile.id, GoalCreate(activity_id=9999, frequency=2), now=now
            )

    def test_start_date_defaults_to_today(self, db_session, create_profile, catalog, now):
        profile = create_profile("today")
        goal = GoalService(db_session).create_goal(
            profile.id, GoalCreate(activity_id=catalog["Yoga"].id, frequency=2), now=now
        )
        assert goal.start_date == now.date()
        assert goal.period == "weekly"

    def test_update_keeps_completions(self, db_session, create_profile, create_goal, now):
        profile = create_profile("updater")
        goal = create_goal(profile, frequency=3)
        ActivityService(db_session).log_activity(
            profile.id, ActivityCreate(goal_id=goal.id), now=now
        )

        updated = GoalService(db_session).update_goal(
            profile.id, goal.id, GoalUpdate(frequency=5, goal_description="Run more")
        )

        assert updated.frequency == 5
        assert updated.goal_description == "Run more"
        assert updated.completions_for_period == 1

    def test_moved_start_date_recounts_period(self, db_session, create_profile, create_goal, now):
        """Completions follow the period boundaries of the new start date"""
        profile = create_profile("mover")
        goal = create_goal(profile, frequency=3)
        service = ActivityService(db_session)
        next_day = now + timedelta(days=1)

        service.log_activity(profile.id, ActivityCreate(goal_id=goal.id), now=now)
        service.log_activity(profile.id, ActivityCreate(goal_id=goal.id), now=next_day)

        # New periods: Jan 4-10 and Jan 11-17, so only the Jan 11 log is current
        goal_service = GoalService(db_session)
        updated = goal_service.update_goal(
            profile.id,
            goal.id,
            GoalUpdate(start_date=now.date() - timedelta(days=6)),
            now=next_day + timedelta(hours=1)
        )
        assert goal_service.completions_this_period(updated, next_day + timedelta(hours=1)) == 1

        result = service.log_activity(
            profile.id, ActivityCreate(goal_id=goal.id), now=next_day + timedelta(hours=2)
        )
        assert result["multiplier"] == 2

    def test_update_by_other_profile_forbidden(self, db_session, create_profile, create_goal):
        owner = create_profile("owner")
        intruder = create_profile("intruder")
        goal = create_goal(owner)

        with pytest.raises(ForbiddenException):
            GoalService(db_session).update_goal(intruder.id, goal.id, GoalUpdate(frequency=1))

    def test_update_missing_goal(self, db_session, create_profile):
        profile = create_profile("ghost")
        with pytest.raises(GoalNotFoundException):
            GoalService(db_session).update_goal(profile.id, 404, GoalUpdate(frequency=1))


class TestGoalDelete:
    """Tests for delete_goal"""

    def test_active_goal_cannot_be_deleted(self, db_session, create_profile, create_goal):
        profile = create_profile("keeper")
        goal = create_goal(profile)

        with pytest.raises(ValidationException):
            GoalService(db_session).delete_goal(profile.id, goal.id)

    def test_delete_keeps_activity_snapshot(self, db_session, create_profile, create_goal, now):
        """Activities survive with goal_id cleared and the label snapshot intact"""
        profile = create_profile("cleaner")
        goal = create_goal(profile, description="Morning runs")
        result = ActivityService(db_session).log_activity(
            profile.id, ActivityCreate(goal_id=goal.id), now=now
        )
        goal_id = goal.id
        service = GoalService(db_session)
        service.toggle_goal_active(profile.id, goal_id, False)

        deleted_id = service.delete_goal(profile.id, goal_id)

        assert deleted_id == goal_id
        activity = db_session.query(Activity).filter(Activity.id == result["activity_id"]).one()
        db_session.refresh(activity)
        assert activity.goal_id is None
        assert activity.goal_description == "Morning runs"
        assert activity.energy_gained == 20


class TestPeriodCounters:
    """Weekly periods are relative to the goal start date"""

    def test_counter_resets_after_seven_days(self, db_session, create_profile, create_goal, now):
        profile = create_profile("resetter")
        goal = create_goal(profile, frequency=3)
        service = ActivityService(db_session)

        service.log_activity(profile.id, ActivityCreate(goal_id=goal.id), now=now)
        second = service.log_activity(
            profile.id, ActivityCreate(goal_id=goal.id), now=now + timedelta(days=1)
        )
        next_week = service.log_activity(
            profile.id, ActivityCreate(goal_id=goal.id), now=now + timedelta(days=7)
        )

        assert second["energy_gained"] == 40
        assert next_week["energy_gained"] == 20
        assert next_week["multiplier"] == 1

    def test_stale_counter_reads_as_zero(self, db_session, create_profile, create_goal, now):
        profile = create_profile("stale")
        goal = create_goal(profile)
        ActivityService(db_session).log_activity(
            profile.id, ActivityCreate(goal_id=goal.id), now=now
        )

        service = GoalService(db_session)
        assert service.completions_this_period(goal, now + timedelta(days=6)) == 1
        assert service.completions_this_period(goal, now + timedelta(days=7)) == 0

    def test_backdated_completion_ranked_in_its_period(
        self, db_session, create_profile, create_goal, now
    ):
        """Back-dating into last week counts that week's logs and leaves the current counter"""
        profile = create_profile("backdater")
        goal = create_goal(profile, frequency=3)
        service = ActivityService(db_session)

        service.log_activity(profile.id, ActivityCreate(goal_id=goal.id), now=now)
        service.log_activity(
            profile.id, ActivityCreate(goal_id=goal.id), now=now + timedelta(days=1)
        )
        current_week = now + timedelta(days=8)
        service.log_activity(profile.id, ActivityCreate(goal_id=goal.id), now=current_week)

        backdated = service.log_activity(
            profile.id,
            ActivityCreate(goal_id=goal.id, timestamp=now + timedelta(days=2)),
            now=current_week
        )

        assert backdated["energy_gained"] == 80  # 3rd completion of week 0
        db_session.refresh(goal)
        assert goal.period_index == 1
        assert goal.completions_for_period == 1

    def test_activity_before_goal_start_rejected(
        self, db_session, create_profile, create_goal, now
    ):
        profile = create_profile("early")
        goal = create_goal(profile)

        with pytest.raises(ValidationException):
            ActivityService(db_session).log_activity(
                profile.id,
                ActivityCreate(goal_id=goal.id, timestamp=now - timedelta(days=1)),
                now=now
            )
