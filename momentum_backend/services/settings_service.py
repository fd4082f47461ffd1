"""
Engine settings service.
"""
import logging
from sqlalchemy.orm import Session

from momentum_backend.models import Settings
from momentum_backend.schemas import SettingsUpdate
from momentum_backend.repositories.settings_repository import SettingsRepository
from momentum_backend.exceptions import ValidationException

logger = logging.getLogger("momentum.settings")


class SettingsService:
    """Service for reading and updating engine tunables"""

    def __init__(self, db: Session):
        self.db = db
        self.settings_repo = SettingsRepository()

    def get(self) -> Settings:
        settings = self.settings_repo.get(self.db)
        self.db.commit()
        return settings

    def update(self, settings_update: SettingsUpdate) -> Settings:
        """Apply a partial settings update"""
        update_data = settings_update.model_dump(exclude_unset=True)
        try:
            settings = self.settings_repo.get(self.db)
            for key, value in update_data.items():
                if value is not None:
                    setattr(settings, key, value)

            if settings.shield_min_hours > settings.shield_max_hours:
                raise ValidationException(
                    "shield_min_hours", "Minimum shield hours cannot exceed the maximum"
                )
            settings = self.settings_repo.update(self.db, settings)
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Engine settings updated: {sorted(update_data)}")
        return settings
