"""
Activity log, status header and feed HTTP routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List

from momentum_backend.database import get_db
from momentum_backend.auth import verify_api_key, get_caller_id
from momentum_backend.schemas import (
    ActivityCreate, ActivityLogResult, BumpResponse,
    FeedItem, StatusHeaderResponse
)
from momentum_backend.services.activity_service import ActivityService
from momentum_backend.services.feed_service import FeedService
from momentum_backend.services.momentum_service import MomentumService

router = APIRouter(prefix="/api", tags=["activities"])


@router.post("/activities", response_model=ActivityLogResult, status_code=status.HTTP_201_CREATED)
def log_activity(
    activity: ActivityCreate,
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Log a completed activity and update momentum."""
    return ActivityService(db).log_activity(caller_id, activity)


@router.post("/activities/{activity_id}/bump", response_model=BumpResponse)
def add_bump(
    activity_id: int,
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Bump an activity."""
    return ActivityService(db).add_bump(caller_id, activity_id)


@router.delete("/activities/{activity_id}/bump", response_model=BumpResponse)
def remove_bump(
    activity_id: int,
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Remove the caller's bump."""
    return ActivityService(db).remove_bump(caller_id, activity_id)


@router.get("/status", response_model=StatusHeaderResponse)
def get_user_status_header(
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Momentum header of the caller."""
    return MomentumService(db).get_user_status_header(caller_id)


@router.get("/feed", response_model=List[FeedItem])
def get_home_feed(
    page_limit: int = Query(10, ge=1, le=200),
    page_offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """One page of the home feed."""
    return FeedService(db).get_home_feed(caller_id, page_limit, page_offset)
