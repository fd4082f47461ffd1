"""
Profile and user directory HTTP routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List

from momentum_backend.database import get_db
from momentum_backend.auth import verify_api_key, get_caller_id
from momentum_backend.schemas import (
    ProfileCreate, ProfileUpdate, ProfileResponse, UsernameAvailability,
    FollowListEntry, ActivityItem
)
from momentum_backend.constants import FOLLOW_LIST_PAGE_SIZE, PROFILE_ACTIVITY_PAGE_SIZE
from momentum_backend.services.activity_service import ActivityService
from momentum_backend.services.profile_service import ProfileService
from momentum_backend.services.social_service import SocialService

router = APIRouter(prefix="/api/profiles", tags=["profiles"])
users_router = APIRouter(prefix="/api/users", tags=["profiles"])


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
def create_profile(
    profile: ProfileCreate,
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Create the caller's profile."""
    return ProfileService(db).create_profile(caller_id, profile)


@router.put("/me", response_model=ProfileResponse)
def update_profile(
    profile_update: ProfileUpdate,
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Update the caller's profile."""
    return ProfileService(db).update_profile(caller_id, profile_update)


@router.get("/check-username", response_model=UsernameAvailability)
def check_username_availability(
    username: str = Query(..., min_length=1, max_length=32),
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    """Whether a username is free (case-insensitive)."""
    return {
        "username": username,
        "available": ProfileService(db).check_username_availability(username),
    }


# No response_model: restricted fields must be absent, not null
@router.get("/by-username/{username}")
def get_profile_by_username(
    username: str,
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Profile envelope as seen by the caller."""
    return ProfileService(db).get_profile_by_username(caller_id, username)


@router.get("/{profile_id}/followers", response_model=List[FollowListEntry])
def get_profile_followers(
    profile_id: str,
    limit: int = Query(FOLLOW_LIST_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Accepted followers of a profile."""
    return SocialService(db).get_followers(caller_id, profile_id, limit, offset)


@router.get("/{profile_id}/following", response_model=List[FollowListEntry])
def get_profile_following(
    profile_id: str,
    limit: int = Query(FOLLOW_LIST_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Profiles a profile follows."""
    return SocialService(db).get_following(caller_id, profile_id, limit, offset)


@router.get("/{profile_id}/activities", response_model=List[ActivityItem])
def get_profile_activities(
    profile_id: str,
    limit: int = Query(PROFILE_ACTIVITY_PAGE_SIZE, ge=1, le=50),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """A profile's activities, newest first."""
    return ActivityService(db).get_profile_activities(caller_id, profile_id, limit, offset)


@users_router.get("/search")
def search_users(
    term: str = Query("", max_length=64),
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Search profiles by username or display name."""
    return ProfileService(db).search_users(caller_id, term)


@users_router.get("/latest")
def get_latest_users(
    limit: int = Query(10, ge=1, le=20),
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Most recently joined profiles."""
    return ProfileService(db).get_latest_users(caller_id, limit)
