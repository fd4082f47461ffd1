import json
import uuid

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, Float, ForeignKey, UniqueConstraint
)

from momentum_backend.database import Base
from momentum_backend.constants import GOAL_PERIOD_WEEKLY, FOLLOW_STATUS_PENDING
from momentum_backend.services.date_service import utcnow


def _new_profile_id() -> str:
    return str(uuid.uuid4())


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=_new_profile_id)
    username = Column(String(32), nullable=False)
    username_normalized = Column(String(32), nullable=False, unique=True, index=True)
    display_name = Column(String(64), nullable=True)
    avatar_url = Column(String(512), nullable=True)
    is_public = Column(Boolean, default=True, nullable=False)
    goal_slots = Column(Integer, default=1, nullable=False)  # Max simultaneously active goals
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class ActivityReference(Base):
    __tablename__ = "activity_reference"

    id = Column(Integer, primary_key=True, index=True)
    activity_class = Column(String, nullable=False, index=True)  # Strength, Speed, Balance, Skill, Extreme
    activity_label = Column(String, nullable=False)
    allowed_units = Column(String, nullable=True)  # JSON array like '["km", "mi"]', empty = free text

    @property
    def units(self) -> list:
        """Allowed units as a list (empty means any free-text unit)"""
        if not self.allowed_units:
            return []
        try:
            units = json.loads(self.allowed_units)
        except json.JSONDecodeError:
            return []
        return units if isinstance(units, list) else []


class Goal(Base):
    __tablename__ = "goals"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    activity_id = Column(Integer, ForeignKey("activity_reference.id"), nullable=False)
    goal_description = Column(String, nullable=True)
    frequency = Column(Integer, nullable=False)  # Target completions per period
    period = Column(String, default=GOAL_PERIOD_WEEKLY, nullable=False)
    start_date = Column(Date, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Rolling counter, valid only while period_index matches the current period
    completions_for_period = Column(Integer, default=0, nullable=False)
    period_index = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Activity(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    goal_id = Column(Integer, ForeignKey("goals.id"), nullable=True, index=True)
    goal_description = Column(String, nullable=True)  # Snapshot, survives goal deletion
    activity_id = Column(Integer, ForeignKey("activity_reference.id"), nullable=False)
    timestamp = Column(DateTime, nullable=False, index=True)  # Naive UTC

    location_tag = Column(String, nullable=True)
    location_is_hidden = Column(Boolean, default=False, nullable=False)

    # details_value is either numeric or free text
    details_value_numeric = Column(Float, nullable=True)
    details_value_text = Column(String, nullable=True)
    details_units = Column(String, nullable=True)

    proof_url = Column(String, nullable=True)  # Opaque storage path

    energy_gained = Column(Integer, nullable=False)  # Immutable once written
    multiplier = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    @property
    def details_value(self):
        if self.details_value_numeric is not None:
            return self.details_value_numeric
        return self.details_value_text


class Bump(Base):
    __tablename__ = "bumps"
    __table_args__ = (
        UniqueConstraint("activity_id", "bumper_id", name="uq_bump_activity_bumper"),
    )

    id = Column(Integer, primary_key=True, index=True)
    activity_id = Column(Integer, ForeignKey("activities.id"), nullable=False, index=True)
    bumper_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)


class MomentumState(Base):
    __tablename__ = "momentum_state"

    profile_id = Column(String(36), ForeignKey("profiles.id"), primary_key=True)
    current_energy = Column(Integer, default=0, nullable=False)
    current_momentum = Column(Integer, default=1, nullable=False)
    lifetime_energy = Column(Integer, default=0, nullable=False)  # Monotonic
    lifetime_momentum = Column(Integer, default=1, nullable=False)  # Highest momentum ever

    # Shield timer
    shield_expires_at = Column(DateTime, nullable=True)  # None until first activity
    shield_timer_seconds = Column(Integer, default=0, nullable=False)

    last_activity_at = Column(DateTime, nullable=True)
    last_decay_at = Column(DateTime, nullable=True)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Follow(Base):
    __tablename__ = "follows"
    __table_args__ = (
        UniqueConstraint("follower_id", "followed_id", name="uq_follow_pair"),
    )

    id = Column(Integer, primary_key=True, index=True)
    follower_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    followed_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    status = Column(String, default=FOLLOW_STATUS_PENDING, nullable=False)  # pending, accepted
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Settings(Base):
    __tablename__ = "engine_settings"

    id = Column(Integer, primary_key=True, index=True)

    # Energy
    base_energy = Column(Integer, default=20)  # Energy per logged activity
    multiplier_cap = Column(Integer, default=16)  # Max weekly streak multiplier

    # Level threshold: level_energy_base + (momentum - baseline) * level_energy_step
    level_energy_base = Column(Integer, default=100)
    level_energy_step = Column(Integer, default=0)
    momentum_baseline = Column(Integer, default=1)  # Momentum never decays below this

    # Shield: base window divided by the highest active goal frequency
    shield_base_window_hours = Column(Integer, default=168)
    shield_min_hours = Column(Integer, default=24)
    shield_max_hours = Column(Integer, default=168)

    # Goals
    default_goal_slots = Column(Integer, default=1)
    require_goal_link = Column(Boolean, default=False)  # Every activity must reference a goal

    # Feed
    feed_page_max = Column(Integer, default=50)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
