"""
Engine settings HTTP routes.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from momentum_backend.database import get_db
from momentum_backend.auth import verify_admin_key, verify_api_key
from momentum_backend.schemas import SettingsUpdate, SettingsResponse
from momentum_backend.services.settings_service import SettingsService

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("", response_model=SettingsResponse)
def get_settings(
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key)
):
    """Current engine settings."""
    return SettingsService(db).get()


@router.put("", response_model=SettingsResponse)
def update_settings(
    settings_update: SettingsUpdate,
    db: Session = Depends(get_db),
    _: str = Depends(verify_api_key),
    __: str = Depends(verify_admin_key)
):
    """Update engine settings (operator only)."""
    return SettingsService(db).update(settings_update)
