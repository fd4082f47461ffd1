"""
Tests for FeedService.
"""
import pytest
from datetime import timedelta

from momentum_backend.schemas import ActivityCreate
from momentum_backend.services.activity_service import ActivityService
from momentum_backend.services.feed_service import FeedService
from momentum_backend.services.social_service import SocialService
from momentum_backend.constants import LOCATION_HIDDEN_SENTINEL
from momentum_backend.exceptions import ValidationException


@pytest.fixture
def feed_world(db_session, create_profile, catalog, now):
    """Viewer follows `followed`; `outsider` is not followed"""
    viewer = create_profile("viewer")
    followed = create_profile("followed")
    outsider = create_profile("outsider")
    SocialService(db_session).request_follow(viewer.id, followed.id)

    service = ActivityService(db_session)

    def log(profile, hours, **kwargs):
        at = now + timedelta(hours=hours)
        return service.log_activity(
            profile.id,
            ActivityCreate(activity_id=catalog["Running"].id, timestamp=at, **kwargs),
            now=at
        )["activity_id"]

    ids = {
        "own": log(viewer, 0, location_tag="Home gym", location_is_hidden=True),
        "followed_hidden": log(followed, 1, location_tag="Secret trail", location_is_hidden=True),
        "outsider": log(outsider, 2),
        "followed_visible": log(followed, 3, location_tag="City park"),
    }
    return viewer, followed, outsider, ids


class TestHomeFeed:
    """Tests for get_home_feed"""

    def test_contains_own_and_followed_newest_first(self, db_session, feed_world, now):
        viewer, followed, outsider, ids = feed_world

        items = FeedService(db_session).get_home_feed(viewer.id, 10, 0, now=now + timedelta(hours=4))

        assert [item["id"] for item in items] == [
            ids["followed_visible"], ids["followed_hidden"], ids["own"]
        ]
        assert items[0]["owner"]["username"] == "followed"
        assert items[0]["activity_label"] == "Running"

    def test_hidden_location_masked_for_others(self, db_session, feed_world, now):
        viewer, followed, outsider, ids = feed_world

        items = {
            item["id"]: item
            for item in FeedService(db_session).get_home_feed(viewer.id, 10, 0, now=now + timedelta(hours=4))
        }

        assert items[ids["followed_hidden"]]["location_tag"] == LOCATION_HIDDEN_SENTINEL
        assert items[ids["followed_visible"]]["location_tag"] == "City park"
        assert items[ids["own"]]["location_tag"] == "Home gym"

    def test_items_carry_bumps_and_momentum(self, db_session, feed_world, now):
        viewer, followed, outsider, ids = feed_world
        ActivityService(db_session).add_bump(viewer.id, ids["followed_visible"])

        items = FeedService(db_session).get_home_feed(viewer.id, 1, 0, now=now + timedelta(hours=4))

        assert items[0]["bump_count"] == 1
        assert items[0]["viewer_has_bumped"] is True
        assert items[0]["energy_gained"] == 20
        assert items[0]["momentum"]["current_momentum"] == 1
        assert items[0]["momentum"]["current_energy"] == 40
        assert items[0]["momentum"]["is_in_danger"] is False

    def test_short_page_means_end(self, db_session, feed_world, now):
        viewer, followed, outsider, ids = feed_world
        service = FeedService(db_session)
        later = now + timedelta(hours=4)

        assert len(service.get_home_feed(viewer.id, 2, 0, now=later)) == 2
        assert len(service.get_home_feed(viewer.id, 2, 2, now=later)) == 1
        assert service.get_home_feed(viewer.id, 2, 4, now=later) == []

    def test_page_size_above_max_rejected(self, db_session, default_settings, feed_world, now):
        """An oversized page is refused rather than silently shortened"""
        viewer, followed, outsider, ids = feed_world
        default_settings.feed_page_max = 2
        db_session.commit()

        with pytest.raises(ValidationException):
            FeedService(db_session).get_home_feed(viewer.id, 3, 0, now=now + timedelta(hours=4))

    def test_full_page_at_max(self, db_session, default_settings, feed_world, now):
        viewer, followed, outsider, ids = feed_world
        default_settings.feed_page_max = 3
        db_session.commit()

        items = FeedService(db_session).get_home_feed(viewer.id, 3, 0, now=now + timedelta(hours=4))
        assert len(items) == 3

    def test_invalid_page_size(self, db_session, feed_world):
        viewer, followed, outsider, ids = feed_world
        with pytest.raises(ValidationException):
            FeedService(db_session).get_home_feed(viewer.id, 0, 0)
