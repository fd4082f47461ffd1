"""
Settings repository - Data access layer for the engine Settings model.
"""
from sqlalchemy.orm import Session
from momentum_backend.models import Settings


class SettingsRepository:
    """Repository for Settings data access"""

    @staticmethod
    def get(db: Session) -> Settings:
        """
        Get settings (creates with defaults if not exists).

        The new row is flushed, not committed; it becomes durable with the
        caller's transaction.

        Returns:
            Settings object
        """
        settings = db.query(Settings).first()
        if not settings:
            settings = Settings()
            db.add(settings)
            db.flush()
            db.refresh(settings)
        return settings

    @staticmethod
    def update(db: Session, settings: Settings) -> Settings:
        """
        Persist settings changes.

        Args:
            db: Database session
            settings: Settings object with updated values

        Returns:
            Updated settings
        """
        db.commit()
        db.refresh(settings)
        return settings
