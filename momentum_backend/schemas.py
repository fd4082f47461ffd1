import json
from pydantic import BaseModel, Field, field_validator
from datetime import datetime, date
from typing import Optional, List, Union, Literal


# Catalog schemas
class ActivityReferenceResponse(BaseModel):
    id: int
    activity_class: str
    activity_label: str
    allowed_units: List[str] = []

    class Config:
        from_attributes = True

    @field_validator("allowed_units", mode="before")
    @classmethod
    def parse_units(cls, value):
        # Stored as JSON text on the model
        if value is None:
            return []
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError:
                return []
            return parsed if isinstance(parsed, list) else []
        return value


# Goal schemas
class GoalBase(BaseModel):
    activity_id: int
    goal_description: Optional[str] = Field(None, max_length=200)
    frequency: int = Field(..., ge=1, le=50)  # Target completions per week
    start_date: Optional[date] = None  # Defaults to today

class GoalCreate(GoalBase):
    pass

class GoalUpdate(BaseModel):
    activity_id: Optional[int] = None
    goal_description: Optional[str] = Field(None, max_length=200)
    frequency: Optional[int] = Field(None, ge=1, le=50)
    start_date: Optional[date] = None

class GoalToggle(BaseModel):
    is_active: bool

class GoalResponse(BaseModel):
    id: int
    owner_id: str
    activity_id: int
    goal_description: Optional[str]
    frequency: int
    period: str
    start_date: date
    is_active: bool
    completions_for_period: int = 0
    period_index: int = 0
    activity_label: Optional[str] = None
    activity_class: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

class ManageGoalsResponse(BaseModel):
    goal_slots: int
    active_count: int
    goals: List[GoalResponse]

class GoalDeleteResponse(BaseModel):
    deleted_id: int


# Activity schemas
class ActivityCreate(BaseModel):
    goal_id: Optional[int] = None
    activity_id: Optional[int] = None  # Defaults to the goal's activity
    timestamp: Optional[datetime] = None  # Defaults to now
    location_tag: Optional[str] = Field(None, max_length=200)
    location_is_hidden: bool = False
    details_value: Optional[Union[float, str]] = None
    details_units: Optional[str] = Field(None, max_length=32)
    proof_url: Optional[str] = Field(None, max_length=1024)

class ActivityLogResult(BaseModel):
    activity_id: int
    energy_gained: int
    multiplier: int
    leveled_up: bool

class BumpResponse(BaseModel):
    activity_id: int
    bump_count: int
    viewer_has_bumped: bool

class ActivityItem(BaseModel):
    """Activity as shown in feeds and on profiles"""
    id: int
    owner_id: str
    goal_id: Optional[int]
    goal_description: Optional[str]
    activity_id: int
    activity_label: Optional[str]
    activity_class: Optional[str]
    timestamp: datetime
    location_tag: Optional[str]
    location_is_hidden: bool
    details_value: Optional[Union[float, str]]
    details_units: Optional[str]
    proof_url: Optional[str]
    energy_gained: int
    multiplier: int
    bump_count: int
    viewer_has_bumped: bool


# Momentum schemas
class MomentumSnapshot(BaseModel):
    current_energy: int
    energy_for_next_level: int
    current_momentum: int
    lifetime_energy: int
    lifetime_momentum: int
    is_in_danger: bool

class FeedOwner(BaseModel):
    id: str
    username: str
    display_name: Optional[str]
    avatar_url: Optional[str]

class FeedItem(ActivityItem):
    owner: FeedOwner
    momentum: MomentumSnapshot

class WeeklyGoalProgress(BaseModel):
    goal_id: int
    activity_label: Optional[str]
    goal_description: Optional[str]
    completions_this_week: int
    target_frequency: int

class StatusHeaderResponse(BaseModel):
    is_in_danger: bool
    current_energy: int
    energy_for_next_level: int
    current_momentum: int
    lifetime_energy: int
    lifetime_momentum: int
    expires_at: Optional[datetime]
    timer_duration: int  # Seconds
    weekly_goals_progress: List[WeeklyGoalProgress]


# Social schemas
class FollowCreate(BaseModel):
    target_id: str = Field(..., min_length=1)

class FollowRequestAction(BaseModel):
    requestor_id: str = Field(..., min_length=1)
    action: Literal["accept", "deny"]
    target_id: Optional[str] = None  # Defaults to the caller

class FollowResponse(BaseModel):
    follower_id: str
    followed_id: str
    status: Optional[str]  # None once deleted

class FollowListEntry(BaseModel):
    id: str
    username: str
    display_name: Optional[str]
    avatar_url: Optional[str]
    is_public: bool
    viewer_follow_status: Optional[str]

class PendingRequest(BaseModel):
    requestor_id: str
    username: str
    display_name: Optional[str]
    avatar_url: Optional[str]
    requested_at: datetime


# Profile schemas
USERNAME_PATTERN = r"^[A-Za-z0-9_.]{3,32}$"

class ProfileCreate(BaseModel):
    username: str = Field(..., pattern=USERNAME_PATTERN)
    display_name: Optional[str] = Field(None, max_length=64)
    avatar_url: Optional[str] = Field(None, max_length=512)
    is_public: bool = True

class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, pattern=USERNAME_PATTERN)
    display_name: Optional[str] = Field(None, max_length=64)
    avatar_url: Optional[str] = Field(None, max_length=512)
    is_public: Optional[bool] = None

class ProfileResponse(BaseModel):
    id: str
    username: str
    display_name: Optional[str]
    avatar_url: Optional[str]
    is_public: bool
    goal_slots: int
    created_at: datetime

    class Config:
        from_attributes = True

class UsernameAvailability(BaseModel):
    username: str
    available: bool


# Settings schemas
class SettingsUpdate(BaseModel):
    base_energy: Optional[int] = Field(None, ge=1, le=1000)
    multiplier_cap: Optional[int] = Field(None, ge=1, le=1024)
    level_energy_base: Optional[int] = Field(None, ge=1, le=100000)
    level_energy_step: Optional[int] = Field(None, ge=0, le=100000)
    momentum_baseline: Optional[int] = Field(None, ge=0, le=100)
    shield_base_window_hours: Optional[int] = Field(None, ge=1, le=24 * 30)
    shield_min_hours: Optional[int] = Field(None, ge=1, le=24 * 30)
    shield_max_hours: Optional[int] = Field(None, ge=1, le=24 * 30)
    default_goal_slots: Optional[int] = Field(None, ge=1, le=20)
    require_goal_link: Optional[bool] = None
    feed_page_max: Optional[int] = Field(None, ge=1, le=200)

class SettingsResponse(BaseModel):
    base_energy: int
    multiplier_cap: int
    level_energy_base: int
    level_energy_step: int
    momentum_baseline: int
    shield_base_window_hours: int
    shield_min_hours: int
    shield_max_hours: int
    default_goal_slots: int
    require_goal_link: bool
    feed_page_max: int
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True
