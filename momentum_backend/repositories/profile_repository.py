"""
Profile repository - Data access layer for Profile and MomentumState.
Writes are flushed; the calling service owns the transaction.
"""
from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session

from momentum_backend.models import Profile, MomentumState


class ProfileRepository:
    """Repository for Profile data access"""

    @staticmethod
    def get_by_id(db: Session, profile_id: str, lock: bool = False) -> Optional[Profile]:
        """Get profile by ID, optionally locking the row for update"""
        query = db.query(Profile).filter(Profile.id == profile_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def get_by_username(db: Session, username: str) -> Optional[Profile]:
        """Get profile by username (case-insensitive)"""
        return db.query(Profile).filter(
            Profile.username_normalized == username.strip().lower()
        ).first()

    @staticmethod
    def get_by_ids(db: Session, profile_ids: List[str]) -> List[Profile]:
        """Get several profiles at once"""
        if not profile_ids:
            return []
        return db.query(Profile).filter(Profile.id.in_(profile_ids)).all()

    @staticmethod
    def search(db: Session, term: str, limit: int) -> List[Profile]:
        """Search profiles by username or display name (wildcards match literally)"""
        escaped = term.strip().lower() \
            .replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        return db.query(Profile).filter(
            or_(
                Profile.username_normalized.like(pattern, escape="\\"),
                Profile.display_name.ilike(pattern, escape="\\")
            )
        ).order_by(Profile.username_normalized).limit(limit).all()

    @staticmethod
    def get_latest(db: Session, limit: int, exclude_id: Optional[str] = None) -> List[Profile]:
        """Get most recently created profiles"""
        query = db.query(Profile)
        if exclude_id:
            query = query.filter(Profile.id != exclude_id)
        return query.order_by(Profile.created_at.desc()).limit(limit).all()

    @staticmethod
    def create(db: Session, profile: Profile) -> Profile:
        """Add a new profile"""
        db.add(profile)
        db.flush()
        return profile


class MomentumStateRepository:
    """Repository for MomentumState data access"""

    @staticmethod
    def get(db: Session, profile_id: str, lock: bool = False) -> Optional[MomentumState]:
        """
        Get momentum state for a profile.

        With lock=True the row is selected FOR UPDATE so concurrent
        activity submissions for the same profile are serialized.
        """
        query = db.query(MomentumState).filter(MomentumState.profile_id == profile_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def create(db: Session, state: MomentumState) -> MomentumState:
        """Add a new momentum state"""
        db.add(state)
        db.flush()
        return state
