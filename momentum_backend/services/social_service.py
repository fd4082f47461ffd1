"""
Social graph service.
Follow requests, the visibility gate and follower lists.
"""
import logging
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from momentum_backend.models import Follow, Profile
from momentum_backend.repositories.follow_repository import FollowRepository
from momentum_backend.repositories.profile_repository import ProfileRepository
from momentum_backend.constants import (
    FOLLOW_STATUS_PENDING,
    FOLLOW_STATUS_ACCEPTED,
    FOLLOW_ACTION_ACCEPT,
    FOLLOW_ACTION_DENY,
    FOLLOW_LIST_PAGE_SIZE,
)
from momentum_backend.exceptions import (
    AlreadyFollowingException,
    AlreadyRequestedException,
    FollowNotFoundException,
    ForbiddenException,
    ProfileNotFoundException,
    ValidationException,
)

logger = logging.getLogger("momentum.social")


class SocialService:
    """Service for follows and profile visibility"""

    def __init__(self, db: Session):
        self.db = db
        self.follow_repo = FollowRepository()
        self.profile_repo = ProfileRepository()

    # ===== VISIBILITY =====

    def follow_status(self, follower_id: Optional[str], followed_id: str) -> Optional[str]:
        """Status of the follow row follower -> followed, None if absent"""
        if not follower_id or follower_id == followed_id:
            return None
        follow = self.follow_repo.get(self.db, follower_id, followed_id)
        return follow.status if follow else None

    def can_view(self, viewer_id: Optional[str], profile: Profile) -> bool:
        """
        Full-access check for a profile.

        Granted to the owner, to anyone for public profiles, and to
        accepted followers of private profiles.
        """
        if viewer_id == profile.id or profile.is_public:
            return True
        return self.follow_status(viewer_id, profile.id) == FOLLOW_STATUS_ACCEPTED

    def mutual_followers_count(self, viewer_id: Optional[str], target_id: str) -> int:
        """Profiles the viewer follows that also follow the target"""
        if not viewer_id or viewer_id == target_id:
            return 0
        return self.follow_repo.count_mutual(self.db, viewer_id, target_id)

    # ===== FOLLOW TRANSITIONS =====

    def request_follow(self, follower_id: str, target_id: str) -> Follow:
        """
        Follow a profile.

        Public targets are followed immediately; private targets get a
        pending request.

        Raises:
            ValidationException: Self-follow
            ProfileNotFoundException: Unknown follower or target
            AlreadyRequestedException: A request is already pending
            AlreadyFollowingException: Already following
        """
        if follower_id == target_id:
            raise ValidationException("target_id", "You cannot follow yourself")

        self._get_profile(follower_id)
        target = self._get_profile(target_id)
        self._raise_if_exists(follower_id, target_id)

        status = FOLLOW_STATUS_ACCEPTED if target.is_public else FOLLOW_STATUS_PENDING
        follow = Follow(follower_id=follower_id, followed_id=target_id, status=status)
        try:
            self.follow_repo.create(self.db, follow)
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent request for the same pair
            self.db.rollback()
            self._raise_if_exists(follower_id, target_id)
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(follow)
        logger.info(f"Follow {follower_id} -> {target_id}: {status}")
        return follow

    def manage_follow_request(
        self,
        actor_id: str,
        requestor_id: str,
        action: str,
        target_id: Optional[str] = None
    ) -> dict:
        """
        Accept or deny a pending follow request.

        Only the followed profile may act on its incoming requests.

        Args:
            actor_id: Caller identity
            requestor_id: Profile that asked to follow
            action: "accept" or "deny"
            target_id: Followed profile (defaults to the caller)

        Returns:
            Dict with follower_id, followed_id and the resulting status
            (None when the request was denied)
        """
        target_id = target_id or actor_id
        if target_id != actor_id:
            raise ForbiddenException("Only the requested profile can manage this request")
        if action not in (FOLLOW_ACTION_ACCEPT, FOLLOW_ACTION_DENY):
            raise ValidationException("action", f"Unknown action '{action}'")

        try:
            follow = self.follow_repo.get(self.db, requestor_id, target_id)
            if not follow or follow.status != FOLLOW_STATUS_PENDING:
                raise FollowNotFoundException(requestor_id, target_id)

            if action == FOLLOW_ACTION_ACCEPT:
                follow.status = FOLLOW_STATUS_ACCEPTED
                result_status = FOLLOW_STATUS_ACCEPTED
            else:
                self.follow_repo.delete(self.db, follow)
                result_status = None

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Follow request {requestor_id} -> {target_id}: {action}")
        return {
            "follower_id": requestor_id,
            "followed_id": target_id,
            "status": result_status,
        }

    def unfollow(self, follower_id: str, target_id: str) -> dict:
        """Remove a follow or cancel a pending request"""
        try:
            follow = self.follow_repo.get(self.db, follower_id, target_id)
            if not follow:
                raise FollowNotFoundException(follower_id, target_id)
            self.follow_repo.delete(self.db, follow)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Unfollow {follower_id} -> {target_id}")
        return {"follower_id": follower_id, "followed_id": target_id, "status": None}

    def accept_all_pending(self, profile_id: str) -> int:
        """
        Accept every pending request addressed to a profile.

        Used when a private profile becomes public. Flushes only; the
        caller commits.
        """
        pending = self.follow_repo.get_pending_incoming(self.db, profile_id)
        for follow in pending:
            follow.status = FOLLOW_STATUS_ACCEPTED
        if pending:
            self.db.flush()
            logger.info(f"Auto-accepted {len(pending)} pending request(s) for {profile_id}")
        return len(pending)

    # ===== LISTS =====

    def get_followers(
        self,
        viewer_id: str,
        profile_id: str,
        limit: int = FOLLOW_LIST_PAGE_SIZE,
        offset: int = 0
    ) -> List[dict]:
        """Accepted followers of a profile, gated by visibility"""
        profile = self._get_visible_profile(viewer_id, profile_id)
        followers = self.follow_repo.get_followers(self.db, profile.id, limit, offset)
        return [self._list_entry(viewer_id, follower) for follower in followers]

    def get_following(
        self,
        viewer_id: str,
        profile_id: str,
        limit: int = FOLLOW_LIST_PAGE_SIZE,
        offset: int = 0
    ) -> List[dict]:
        """Profiles a profile follows, gated by visibility"""
        profile = self._get_visible_profile(viewer_id, profile_id)
        following = self.follow_repo.get_following(self.db, profile.id, limit, offset)
        return [self._list_entry(viewer_id, followed) for followed in following]

    def get_pending_requests(self, owner_id: str) -> List[dict]:
        """Incoming pending requests with requestor details"""
        pending = self.follow_repo.get_pending_incoming(self.db, owner_id)
        requestors = {
            profile.id: profile
            for profile in self.profile_repo.get_by_ids(
                self.db, [follow.follower_id for follow in pending]
            )
        }

        result = []
        for follow in pending:
            requestor = requestors.get(follow.follower_id)
            if not requestor:
                continue
            result.append({
                "requestor_id": requestor.id,
                "username": requestor.username,
                "display_name": requestor.display_name,
                "avatar_url": requestor.avatar_url,
                "requested_at": follow.created_at,
            })
        return result

    # ===== HELPERS =====

    def _get_profile(self, profile_id: str) -> Profile:
        profile = self.profile_repo.get_by_id(self.db, profile_id)
        if not profile:
            raise ProfileNotFoundException(profile_id)
        return profile

    def _get_visible_profile(self, viewer_id: str, profile_id: str) -> Profile:
        profile = self._get_profile(profile_id)
        if not self.can_view(viewer_id, profile):
            raise ForbiddenException("This profile is private")
        return profile

    def _raise_if_exists(self, follower_id: str, target_id: str) -> None:
        existing = self.follow_repo.get(self.db, follower_id, target_id)
        if not existing:
            return
        if existing.status == FOLLOW_STATUS_PENDING:
            raise AlreadyRequestedException(target_id)
        raise AlreadyFollowingException(target_id)

    def _list_entry(self, viewer_id: str, profile: Profile) -> dict:
        return {
            "id": profile.id,
            "username": profile.username,
            "display_name": profile.display_name,
            "avatar_url": profile.avatar_url,
            "is_public": profile.is_public,
            "viewer_follow_status": self.follow_status(viewer_id, profile.id),
        }
