"""
Activity repository - Data access layer for the activity log and bumps.
Writes are flushed; the calling service owns the transaction.
"""
from datetime import datetime
from typing import Dict, List, Optional, Set
from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from momentum_backend.models import Activity, Bump


class ActivityRepository:
    """Repository for Activity data access"""

    @staticmethod
    def get_by_id(db: Session, activity_id: int) -> Optional[Activity]:
        """Get activity by ID"""
        return db.query(Activity).filter(Activity.id == activity_id).first()

    @staticmethod
    def create(db: Session, activity: Activity) -> Activity:
        """Append a new activity"""
        db.add(activity)
        db.flush()
        return activity

    @staticmethod
    def count_for_owner(db: Session, owner_id: str) -> int:
        """Total activities logged by a profile"""
        return db.query(Activity).filter(Activity.owner_id == owner_id).count()

    @staticmethod
    def count_for_goal_in_range(
        db: Session,
        goal_id: int,
        range_start: datetime,
        range_end: datetime
    ) -> int:
        """Count activities linked to a goal within [range_start, range_end)"""
        return db.query(Activity).filter(
            and_(
                Activity.goal_id == goal_id,
                Activity.timestamp >= range_start,
                Activity.timestamp < range_end
            )
        ).count()

    @staticmethod
    def get_for_owners(
        db: Session,
        owner_ids: List[str],
        limit: int,
        offset: int
    ) -> List[Activity]:
        """Get activities of several profiles, newest first"""
        if not owner_ids:
            return []
        return db.query(Activity).filter(
            Activity.owner_id.in_(owner_ids)
        ).order_by(
            Activity.timestamp.desc(), Activity.id.desc()
        ).offset(offset).limit(limit).all()


class BumpRepository:
    """Repository for Bump data access"""

    @staticmethod
    def get(db: Session, activity_id: int, bumper_id: str) -> Optional[Bump]:
        """Get a bump by (activity, bumper) pair"""
        return db.query(Bump).filter(
            and_(
                Bump.activity_id == activity_id,
                Bump.bumper_id == bumper_id
            )
        ).first()

    @staticmethod
    def create(db: Session, bump: Bump) -> Bump:
        """Add a bump (raises IntegrityError on a duplicate pair)"""
        db.add(bump)
        db.flush()
        return bump

    @staticmethod
    def delete(db: Session, bump: Bump) -> None:
        """Delete a bump"""
        db.delete(bump)
        db.flush()

    @staticmethod
    def count_for_activity(db: Session, activity_id: int) -> int:
        """Bump count computed from the join table"""
        return db.query(Bump).filter(Bump.activity_id == activity_id).count()

    @staticmethod
    def counts_for_activities(db: Session, activity_ids: List[int]) -> Dict[int, int]:
        """Bump counts for several activities"""
        if not activity_ids:
            return {}
        rows = db.query(Bump.activity_id, func.count(Bump.id)).filter(
            Bump.activity_id.in_(activity_ids)
        ).group_by(Bump.activity_id).all()
        return {activity_id: count for activity_id, count in rows}

    @staticmethod
    def bumped_by(db: Session, activity_ids: List[int], bumper_id: str) -> Set[int]:
        """IDs of the given activities bumped by bumper_id"""
        if not activity_ids or not bumper_id:
            return set()
        rows = db.query(Bump.activity_id).filter(
            and_(
                Bump.activity_id.in_(activity_ids),
                Bump.bumper_id == bumper_id
            )
        ).all()
        return {row[0] for row in rows}
