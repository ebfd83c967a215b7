"""Superadmin endpoints for system-wide model and prompt settings."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from smartresponse.core.deps import get_db, require_superadmin
from smartresponse.db.enums import SystemSettingKey
from smartresponse.schemas.ai import SystemSettingRead, SystemSettingUpdate
from smartresponse.services import system_settings_service

router = APIRouter(prefix="/admin/settings", tags=["admin"])


def _parse_key(key: str) -> SystemSettingKey:
    try:
        return SystemSettingKey(key)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown setting '{key}'")


@router.get("", response_model=list[SystemSettingRead])
def list_settings(account=Depends(require_superadmin), db: Session = Depends(get_db)):
    values = system_settings_service.list_system_settings(db, account)
    return [SystemSettingRead(key=key.value, value=values.get(key.value)) for key in SystemSettingKey]


@router.get("/{key}", response_model=SystemSettingRead)
def get_setting(key: str, account=Depends(require_superadmin), db: Session = Depends(get_db)):
    setting_key = _parse_key(key)
    value = system_settings_service.settings_store.get(db, setting_key)
    return SystemSettingRead(key=setting_key.value, value=value)


@router.put("/{key}", response_model=SystemSettingRead)
def update_setting(
    key: str,
    data: SystemSettingUpdate,
    account=Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    setting_key = _parse_key(key)
    row = system_settings_service.update_system_setting(db, account, setting_key, data.value or "")
    return SystemSettingRead(key=row.key, value=row.value or None)
