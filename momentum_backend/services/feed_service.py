"""
Home feed service.
Pages through the viewer's and followed profiles' activities, newest first.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from momentum_backend.repositories.activity_repository import ActivityRepository
from momentum_backend.repositories.follow_repository import FollowRepository
from momentum_backend.repositories.profile_repository import ProfileRepository
from momentum_backend.repositories.settings_repository import SettingsRepository
from momentum_backend.services.activity_service import ActivityService
from momentum_backend.services.momentum_service import MomentumService
from momentum_backend.services.date_service import utcnow
from momentum_backend.exceptions import ProfileNotFoundException, ValidationException


class FeedService:
    """Service for the home feed"""

    def __init__(self, db: Session):
        self.db = db
        self.activity_repo = ActivityRepository()
        self.follow_repo = FollowRepository()
        self.profile_repo = ProfileRepository()
        self.settings_repo = SettingsRepository()
        self.activity_service = ActivityService(db)
        self.momentum_service = MomentumService(db)

    def get_home_feed(
        self,
        viewer_id: str,
        limit: int = 10,
        offset: int = 0,
        now: Optional[datetime] = None
    ) -> List[dict]:
        """
        One page of the home feed.

        Items carry the activity, its owner and the owner's current
        momentum snapshot (decay settled before reading). A page shorter
        than `limit` is the last one.

        Args:
            viewer_id: Caller identity
            limit: Page size, at most settings.feed_page_max
            offset: Items to skip
            now: Evaluation time (naive UTC)

        Returns:
            List of feed item dicts
        """
        now = now or utcnow()
        if limit < 1:
            raise ValidationException("page_limit", "Page size must be at least 1")
        if offset < 0:
            raise ValidationException("page_offset", "Offset cannot be negative")
        if not self.profile_repo.get_by_id(self.db, viewer_id):
            raise ProfileNotFoundException(viewer_id)

        settings = self.settings_repo.get(self.db)
        if limit > settings.feed_page_max:
            raise ValidationException(
                "page_limit", f"Page size cannot exceed {settings.feed_page_max}"
            )

        owner_ids = self.follow_repo.get_following_ids(self.db, viewer_id)
        owner_ids.append(viewer_id)
        activities = self.activity_repo.get_for_owners(self.db, owner_ids, limit, offset)
        if not activities:
            return []

        page_owner_ids = sorted({activity.owner_id for activity in activities})
        try:
            states = {
                owner_id: self.momentum_service.settle_for_profile(owner_id, now)
                for owner_id in page_owner_ids
            }
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        snapshots = {
            owner_id: self.momentum_service.snapshot(state, now)
            for owner_id, state in states.items()
        }
        owners = {
            profile.id: profile
            for profile in self.profile_repo.get_by_ids(self.db, page_owner_ids)
        }

        items = self.activity_service.build_items(activities, viewer_id)
        for item in items:
            owner = owners.get(item["owner_id"])
            item["owner"] = {
                "id": item["owner_id"],
                "username": owner.username if owner else "",
                "display_name": owner.display_name if owner else None,
                "avatar_url": owner.avatar_url if owner else None,
            }
            item["momentum"] = snapshots[item["owner_id"]]
        return items
