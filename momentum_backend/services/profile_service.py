"""
Profile directory service.
Profile creation and updates, username availability, search, and the
public/full profile envelopes.
"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from momentum_backend.models import Profile
from momentum_backend.schemas import ProfileCreate, ProfileUpdate
from momentum_backend.repositories.profile_repository import ProfileRepository
from momentum_backend.repositories.activity_repository import ActivityRepository
from momentum_backend.repositories.follow_repository import FollowRepository
from momentum_backend.repositories.goal_repository import ActivityReferenceRepository
from momentum_backend.repositories.settings_repository import SettingsRepository
from momentum_backend.services.activity_service import ActivityService
from momentum_backend.services.goal_service import GoalService
from momentum_backend.services.momentum_service import MomentumService
from momentum_backend.services.social_service import SocialService
from momentum_backend.services.date_service import utcnow
from momentum_backend.constants import PROFILE_ACTIVITY_PAGE_SIZE, SEARCH_RESULTS_LIMIT
from momentum_backend.exceptions import (
    ConflictException,
    ProfileNotFoundException,
    UsernameNotAvailableException,
)

logger = logging.getLogger("momentum.profiles")


def normalize_username(username: str) -> str:
    return username.strip().lower()


class ProfileService:
    """Service for profiles and profile envelopes"""

    def __init__(self, db: Session):
        self.db = db
        self.profile_repo = ProfileRepository()
        self.activity_repo = ActivityRepository()
        self.follow_repo = FollowRepository()
        self.catalog_repo = ActivityReferenceRepository()
        self.settings_repo = SettingsRepository()
        self.activity_service = ActivityService(db)
        self.goal_service = GoalService(db)
        self.momentum_service = MomentumService(db)
        self.social_service = SocialService(db)

    # ===== PROFILE WRITES =====

    def create_profile(self, caller_id: str, profile_data: ProfileCreate) -> Profile:
        """
        Create the caller's profile and its baseline momentum state.

        Raises:
            ConflictException: The caller already has a profile
            UsernameNotAvailableException: Username taken (case-insensitive)
        """
        username = profile_data.username.strip()
        try:
            if self.profile_repo.get_by_id(self.db, caller_id):
                raise ConflictException(f"Profile {caller_id} already exists")
            if not self.check_username_availability(username):
                raise UsernameNotAvailableException(username)

            settings = self.settings_repo.get(self.db)
            profile = Profile(
                id=caller_id,
                username=username,
                username_normalized=normalize_username(username),
                display_name=profile_data.display_name,
                avatar_url=profile_data.avatar_url,
                is_public=profile_data.is_public,
                goal_slots=settings.default_goal_slots,
            )
            self.profile_repo.create(self.db, profile)
            self.momentum_service.get_or_create_state(caller_id)
            self.db.commit()
        except IntegrityError:
            # Unique username index lost a race
            self.db.rollback()
            raise UsernameNotAvailableException(username)
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(profile)
        logger.info(f"Profile created: {profile.username} ({caller_id})")
        return profile

    def update_profile(self, caller_id: str, profile_update: ProfileUpdate) -> Profile:
        """
        Partially update the caller's profile.

        Switching from private to public accepts all pending follow requests.
        """
        update_data = profile_update.model_dump(exclude_unset=True)
        try:
            profile = self.profile_repo.get_by_id(self.db, caller_id, lock=True)
            if not profile:
                raise ProfileNotFoundException(caller_id)

            username = update_data.pop("username", None)
            if username is not None:
                username = username.strip()
                normalized = normalize_username(username)
                if normalized != profile.username_normalized \
                        and not self.check_username_availability(username):
                    raise UsernameNotAvailableException(username)
                profile.username = username
                profile.username_normalized = normalized

            becoming_public = update_data.get("is_public") is True and not profile.is_public
            for key, value in update_data.items():
                if key == "is_public" and value is None:
                    continue
                setattr(profile, key, value)

            if becoming_public:
                self.social_service.accept_all_pending(profile.id)

            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise UsernameNotAvailableException(profile_update.username)
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(profile)
        return profile

    def check_username_availability(self, candidate: str) -> bool:
        """True if no profile uses the username (case-insensitive)"""
        if not candidate or not candidate.strip():
            return False
        return self.profile_repo.get_by_username(self.db, candidate) is None

    # ===== ENVELOPES =====

    def get_profile_by_username(
        self,
        viewer_id: Optional[str],
        username: str,
        now: Optional[datetime] = None
    ) -> dict:
        """
        Profile envelope for a viewer.

        Everyone gets the public part. Viewers passing the visibility gate
        also get momentum, active goals and the first page of activities;
        for everyone else those keys are absent from the dict.
        """
        now = now or utcnow()
        profile = self.profile_repo.get_by_username(self.db, username)
        if not profile:
            raise ProfileNotFoundException(username)

        envelope = self.public_envelope(viewer_id, profile)
        if not self.social_service.can_view(viewer_id, profile):
            return envelope

        try:
            state = self.momentum_service.settle_for_profile(profile.id, now)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        snapshot = self.momentum_service.snapshot(state, now)
        active_goals = self.goal_service.get_active_goals(profile.id)
        catalog = {
            entry.id: entry
            for entry in self.catalog_repo.get_by_ids(
                self.db, list({goal.activity_id for goal in active_goals})
            )
        }
        activities = self.activity_repo.get_for_owners(
            self.db, [profile.id], PROFILE_ACTIVITY_PAGE_SIZE, 0
        )

        envelope.update({
            "energy": snapshot["current_energy"],
            "energy_for_next_level": snapshot["energy_for_next_level"],
            "momentum": snapshot["current_momentum"],
            "lifetime_energy": snapshot["lifetime_energy"],
            "lifetime_momentum": snapshot["lifetime_momentum"],
            "is_in_danger": snapshot["is_in_danger"],
            "active_goals": [
                self.goal_service.to_dict(goal, catalog.get(goal.activity_id), now)
                for goal in active_goals
            ],
            "activity_log": self.activity_service.build_items(activities, viewer_id),
        })
        return envelope

    def public_envelope(self, viewer_id: Optional[str], profile: Profile) -> dict:
        """Fields of a profile visible to anyone"""
        return {
            "id": profile.id,
            "username": profile.username,
            "display_name": profile.display_name,
            "avatar_url": profile.avatar_url,
            "is_public": profile.is_public,
            "goal_slots": profile.goal_slots,
            "total_activities": self.activity_repo.count_for_owner(self.db, profile.id),
            "follower_count": self.follow_repo.count_followers(self.db, profile.id),
            "following_count": self.follow_repo.count_following(self.db, profile.id),
            "mutual_followers_count": self.social_service.mutual_followers_count(viewer_id, profile.id),
            "viewer_follow_status": self.social_service.follow_status(viewer_id, profile.id),
            "target_follow_status": self.social_service.follow_status(profile.id, viewer_id),
        }

    # ===== DIRECTORY =====

    def search_users(self, viewer_id: Optional[str], term: str) -> List[dict]:
        """Profiles whose username or display name contains the term"""
        if not term or not term.strip():
            return []
        profiles = self.profile_repo.search(self.db, term, SEARCH_RESULTS_LIMIT)
        return [self.public_envelope(viewer_id, profile) for profile in profiles]

    def get_latest_users(self, viewer_id: Optional[str], limit: int = 10) -> List[dict]:
        """Most recently created profiles, excluding the viewer"""
        limit = max(1, min(limit, SEARCH_RESULTS_LIMIT))
        profiles = self.profile_repo.get_latest(self.db, limit, exclude_id=viewer_id)
        return [self.public_envelope(viewer_id, profile) for profile in profiles]
