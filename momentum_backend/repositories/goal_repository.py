"""
Goal repository - Data access layer for goals and the activity catalog.
Writes are flushed; the calling service owns the transaction.
"""
from typing import List, Optional
from sqlalchemy import and_
from sqlalchemy.orm import Session

from momentum_backend.models import Goal, ActivityReference, Activity


class ActivityReferenceRepository:
    """Repository for the read-only activity catalog"""

    @staticmethod
    def get_all(db: Session) -> List[ActivityReference]:
        """Get all catalog entries ordered by class and label"""
        return db.query(ActivityReference).order_by(
            ActivityReference.activity_class,
            ActivityReference.activity_label
        ).all()

    @staticmethod
    def get_by_id(db: Session, activity_id: int) -> Optional[ActivityReference]:
        """Get catalog entry by ID"""
        return db.query(ActivityReference).filter(
            ActivityReference.id == activity_id
        ).first()

    @staticmethod
    def get_by_ids(db: Session, activity_ids: List[int]) -> List[ActivityReference]:
        """Get several catalog entries at once"""
        if not activity_ids:
            return []
        return db.query(ActivityReference).filter(
            ActivityReference.id.in_(activity_ids)
        ).all()

    @staticmethod
    def count(db: Session) -> int:
        return db.query(ActivityReference).count()

    @staticmethod
    def create_many(db: Session, entries: List[ActivityReference]) -> None:
        """Insert catalog entries"""
        db.add_all(entries)
        db.flush()


class GoalRepository:
    """Repository for Goal data access"""

    @staticmethod
    def get_by_id(db: Session, goal_id: int) -> Optional[Goal]:
        """Get goal by ID"""
        return db.query(Goal).filter(Goal.id == goal_id).first()

    @staticmethod
    def get_for_owner(db: Session, owner_id: str) -> List[Goal]:
        """Get all goals of a profile, newest first"""
        return db.query(Goal).filter(
            Goal.owner_id == owner_id
        ).order_by(Goal.created_at.desc(), Goal.id.desc()).all()

    @staticmethod
    def get_active_for_owner(db: Session, owner_id: str) -> List[Goal]:
        """Get active goals of a profile, oldest first (slot order)"""
        return db.query(Goal).filter(
            and_(
                Goal.owner_id == owner_id,
                Goal.is_active == True
            )
        ).order_by(Goal.created_at, Goal.id).all()

    @staticmethod
    def count_active(db: Session, owner_id: str) -> int:
        """Count active goals of a profile"""
        return db.query(Goal).filter(
            and_(
                Goal.owner_id == owner_id,
                Goal.is_active == True
            )
        ).count()

    @staticmethod
    def create(db: Session, goal: Goal) -> Goal:
        """Add a new goal"""
        db.add(goal)
        db.flush()
        return goal

    @staticmethod
    def delete(db: Session, goal: Goal) -> None:
        """
        Delete a goal.

        Activities referencing it keep their goal_description snapshot and
        have goal_id set to NULL.
        """
        db.query(Activity).filter(Activity.goal_id == goal.id).update(
            {Activity.goal_id: None}, synchronize_session=False
        )
        db.delete(goal)
        db.flush()
