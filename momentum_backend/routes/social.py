"""
Follow HTTP routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from momentum_backend.database import get_db
from momentum_backend.auth import verify_api_key, get_caller_id
from momentum_backend.schemas import (
    FollowCreate, FollowRequestAction, FollowResponse, PendingRequest
)
from momentum_backend.services.social_service import SocialService

router = APIRouter(prefix="/api/follows", tags=["social"])


@router.post("", response_model=FollowResponse, status_code=status.HTTP_201_CREATED)
def request_follow(
    payload: FollowCreate,
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Follow a profile (pending for private profiles)."""
    follow = SocialService(db).request_follow(caller_id, payload.target_id)
    return {
        "follower_id": follow.follower_id,
        "followed_id": follow.followed_id,
        "status": follow.status,
    }


@router.delete("/{target_id}", response_model=FollowResponse)
def unfollow(
    target_id: str,
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Unfollow a profile or cancel a pending request."""
    return SocialService(db).unfollow(caller_id, target_id)


@router.get("/requests", response_model=List[PendingRequest])
def get_pending_requests(
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Incoming pending follow requests."""
    return SocialService(db).get_pending_requests(caller_id)


@router.post("/requests", response_model=FollowResponse)
def manage_follow_request(
    payload: FollowRequestAction,
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Accept or deny a pending follow request."""
    return SocialService(db).manage_follow_request(
        caller_id, payload.requestor_id, payload.action, payload.target_id
    )
