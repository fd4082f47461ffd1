"""
Goal HTTP routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from momentum_backend.database import get_db
from momentum_backend.auth import verify_api_key, get_caller_id
from momentum_backend.schemas import (
    GoalCreate, GoalUpdate, GoalToggle, GoalResponse,
    ManageGoalsResponse, GoalDeleteResponse
)
from momentum_backend.services.goal_service import GoalService

router = APIRouter(prefix="/api/goals", tags=["goals"])


@router.get("", response_model=ManageGoalsResponse)
def get_manage_goals_data(
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Goal slots and every goal of the caller."""
    return GoalService(db).get_manage_goals_data(caller_id)


@router.post("", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
def create_goal(
    goal: GoalCreate,
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Create a new active goal."""
    service = GoalService(db)
    return service.to_dict(service.create_goal(caller_id, goal))


@router.put("/{goal_id}", response_model=GoalResponse)
def update_goal(
    goal_id: int,
    goal_update: GoalUpdate,
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Update a goal."""
    service = GoalService(db)
    return service.to_dict(service.update_goal(caller_id, goal_id, goal_update))


@router.post("/{goal_id}/toggle", response_model=GoalResponse)
def toggle_goal_active(
    goal_id: int,
    toggle: GoalToggle,
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Activate or deactivate a goal."""
    service = GoalService(db)
    return service.to_dict(service.toggle_goal_active(caller_id, goal_id, toggle.is_active))


@router.delete("/{goal_id}", response_model=GoalDeleteResponse)
def delete_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    caller_id: str = Depends(get_caller_id),
    _: str = Depends(verify_api_key)
):
    """Delete an inactive goal."""
    return {"deleted_id": GoalService(db).delete_goal(caller_id, goal_id)}
