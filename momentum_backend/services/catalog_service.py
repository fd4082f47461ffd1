"""
Activity catalog service.
Read-only reference data of loggable activities, grouped by class.
"""
import json
import logging
from collections import OrderedDict
from typing import Dict, List
from sqlalchemy.orm import Session

from momentum_backend.models import ActivityReference
from momentum_backend.repositories.goal_repository import ActivityReferenceRepository
from momentum_backend.constants import DEFAULT_ACTIVITY_CATALOG

logger = logging.getLogger("momentum.catalog")


class CatalogService:
    """Service for the activity catalog"""

    def __init__(self, db: Session):
        self.db = db
        self.catalog_repo = ActivityReferenceRepository()

    def list_activities(self) -> List[ActivityReference]:
        """All catalog entries ordered by class, then label"""
        return self.catalog_repo.get_all(self.db)

    def list_grouped(self) -> Dict[str, List[ActivityReference]]:
        """Catalog entries keyed by activity class (class order preserved)"""
        grouped: Dict[str, List[ActivityReference]] = OrderedDict()
        for entry in self.list_activities():
            grouped.setdefault(entry.activity_class, []).append(entry)
        return grouped

    def seed_defaults(self) -> int:
        """
        Insert the default catalog when the reference table is empty.

        Returns:
            Number of entries inserted
        """
        if self.catalog_repo.count(self.db) > 0:
            return 0

        entries = [
            ActivityReference(
                activity_class=activity_class,
                activity_label=label,
                allowed_units=json.dumps(units),
            )
            for activity_class, label, units in DEFAULT_ACTIVITY_CATALOG
        ]
        try:
            self.catalog_repo.create_many(self.db, entries)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Seeded activity catalog with {len(entries)} entries")
        return len(entries)
