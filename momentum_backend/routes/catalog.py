"""
Activity catalog HTTP routes.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Dict, List

from momentum_backend.database import get_db
from momentum_backend.auth import verify_api_key
from momentum_backend.schemas import ActivityReferenceResponse
from momentum_backend.services.catalog_service import CatalogService

logger = logging.getLogger("momentum.catalog")

router = APIRouter(prefix="/api/catalog", tags=["catalog"])

CATALOG_UNAVAILABLE = "Activity catalog is temporarily unavailable"


@router.get("", response_model=List[ActivityReferenceResponse])
def list_activities(
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    """All loggable activities ordered by class and label."""
    try:
        return CatalogService(db).list_activities()
    except SQLAlchemyError as e:
        logger.error(f"Catalog read failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=CATALOG_UNAVAILABLE)


@router.get("/grouped", response_model=Dict[str, List[ActivityReferenceResponse]])
def list_grouped(
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    """Activities grouped by class."""
    try:
        return CatalogService(db).list_grouped()
    except SQLAlchemyError as e:
        logger.error(f"Catalog read failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=CATALOG_UNAVAILABLE)
