"""
Follow repository - Data access layer for the social graph.
Writes are flushed; the calling service owns the transaction.
"""
from typing import List, Optional
from sqlalchemy import and_, select
from sqlalchemy.orm import Session, aliased

from momentum_backend.models import Follow, Profile
from momentum_backend.constants import FOLLOW_STATUS_ACCEPTED, FOLLOW_STATUS_PENDING


class FollowRepository:
    """Repository for Follow data access"""

    @staticmethod
    def get(db: Session, follower_id: str, followed_id: str) -> Optional[Follow]:
        """Get the follow row for a pair, whatever its status"""
        return db.query(Follow).filter(
            and_(
                Follow.follower_id == follower_id,
                Follow.followed_id == followed_id
            )
        ).first()

    @staticmethod
    def create(db: Session, follow: Follow) -> Follow:
        """Add a follow row (raises IntegrityError on a duplicate pair)"""
        db.add(follow)
        db.flush()
        return follow

    @staticmethod
    def delete(db: Session, follow: Follow) -> None:
        """Delete a follow row"""
        db.delete(follow)
        db.flush()

    @staticmethod
    def get_followers(db: Session, profile_id: str, limit: int, offset: int) -> List[Profile]:
        """Profiles with an accepted follow to profile_id"""
        return db.query(Profile).join(
            Follow, Follow.follower_id == Profile.id
        ).filter(
            and_(
                Follow.followed_id == profile_id,
                Follow.status == FOLLOW_STATUS_ACCEPTED
            )
        ).order_by(Follow.created_at.desc(), Follow.id.desc()).offset(offset).limit(limit).all()

    @staticmethod
    def get_following(db: Session, profile_id: str, limit: int, offset: int) -> List[Profile]:
        """Profiles that profile_id follows (accepted)"""
        return db.query(Profile).join(
            Follow, Follow.followed_id == Profile.id
        ).filter(
            and_(
                Follow.follower_id == profile_id,
                Follow.status == FOLLOW_STATUS_ACCEPTED
            )
        ).order_by(Follow.created_at.desc(), Follow.id.desc()).offset(offset).limit(limit).all()

    @staticmethod
    def get_following_ids(db: Session, profile_id: str) -> List[str]:
        """IDs of every profile profile_id follows (accepted)"""
        rows = db.query(Follow.followed_id).filter(
            and_(
                Follow.follower_id == profile_id,
                Follow.status == FOLLOW_STATUS_ACCEPTED
            )
        ).all()
        return [row[0] for row in rows]

    @staticmethod
    def get_pending_incoming(db: Session, profile_id: str) -> List[Follow]:
        """Pending follow requests addressed to profile_id, oldest first"""
        return db.query(Follow).filter(
            and_(
                Follow.followed_id == profile_id,
                Follow.status == FOLLOW_STATUS_PENDING
            )
        ).order_by(Follow.created_at, Follow.id).all()

    @staticmethod
    def count_followers(db: Session, profile_id: str) -> int:
        return db.query(Follow).filter(
            and_(
                Follow.followed_id == profile_id,
                Follow.status == FOLLOW_STATUS_ACCEPTED
            )
        ).count()

    @staticmethod
    def count_following(db: Session, profile_id: str) -> int:
        return db.query(Follow).filter(
            and_(
                Follow.follower_id == profile_id,
                Follow.status == FOLLOW_STATUS_ACCEPTED
            )
        ).count()

    @staticmethod
    def count_mutual(db: Session, viewer_id: str, target_id: str) -> int:
        """
        Count profiles the viewer follows that also follow the target.

        Both edges must be accepted.
        """
        viewer_edge = aliased(Follow)
        viewer_following = select(viewer_edge.followed_id).where(
            and_(
                viewer_edge.follower_id == viewer_id,
                viewer_edge.status == FOLLOW_STATUS_ACCEPTED
            )
        )
        return db.query(Follow).filter(
            and_(
                Follow.followed_id == target_id,
                Follow.status == FOLLOW_STATUS_ACCEPTED,
                Follow.follower_id.in_(viewer_following)
            )
        ).count()
