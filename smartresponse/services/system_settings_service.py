"""System settings service.

Process-wide key/value settings (model selection, global prompts) with an
in-process read cache. Writes go through update_system_setting, which
invalidates the cached key; there is no time-based expiry.

The cache is per process: with several uvicorn workers, only the worker
that handled the write sees it at once. The others keep the old value
until they restart or invalidate.
"""

import logging
import threading
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from smartresponse.db.enums import SystemSettingKey
from smartresponse.db.models import Account, SystemSetting

logger = logging.getLogger(__name__)

_MISSING = object()


class SystemSettingsStore:
    """Cached reader for SystemSetting rows."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cache: dict[str, str | None] = {}
        # Bumped on every invalidation; a read started before it is not cached
        self._generation = 0

    def get(self, db: Session, key: SystemSettingKey | str) -> str | None:
        key = SystemSettingKey(key).value
        with self._lock:
            cached = self._cache.get(key, _MISSING)
            generation = self._generation
        if cached is not _MISSING:
            return cached

        row = db.get(SystemSetting, key)
        value = (row.value or None) if row else None
        with self._lock:
            if generation == self._generation:
                self._cache[key] = value
        return value

    def invalidate(self, key: SystemSettingKey | str | None = None) -> None:
        with self._lock:
            self._generation += 1
            if key is None:
                self._cache.clear()
            else:
                self._cache.pop(SystemSettingKey(key).value, None)


settings_store = SystemSettingsStore()


def get_text_model(db: Session, store: SystemSettingsStore | None = None) -> str | None:
    """Configured text model string, or None when unset (no default model)."""
    return (store or settings_store).get(db, SystemSettingKey.TEXT_MODEL)


def get_image_model(db: Session, store: SystemSettingsStore | None = None) -> str | None:
    """Configured image model string, or None when unset (no default model)."""
    return (store or settings_store).get(db, SystemSettingKey.IMAGE_MODEL)


def get_global_text_prompt(db: Session, store: SystemSettingsStore | None = None) -> str | None:
    return (store or settings_store).get(db, SystemSettingKey.GLOBAL_TEXT_PROMPT)


def get_global_image_prompt(db: Session, store: SystemSettingsStore | None = None) -> str | None:
    return (store or settings_store).get(db, SystemSettingKey.GLOBAL_IMAGE_PROMPT)


def update_system_setting(
    db: Session,
    account: Account,
    key: SystemSettingKey | str,
    value: str,
    store: SystemSettingsStore | None = None,
) -> SystemSetting:
    """Create or update a setting (superadmins only) and drop it from the cache."""
    if not account.is_superadmin:
        raise PermissionError("Only superadmins can change system settings")

    key = SystemSettingKey(key)
    row = db.get(SystemSetting, key.value)
    if row is None:
        row = SystemSetting(key=key.value)
        db.add(row)
    row.value = value.strip()
    row.updated_by = account.id
    row.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(row)

    (store or settings_store).invalidate(key)
    logger.info("System setting %s updated by account=%s", key.value, account.id)
    return row


def list_system_settings(db: Session, account: Account) -> dict[str, str | None]:
    if not account.is_superadmin:
        raise PermissionError("Only superadmins can view system settings")
    rows = db.query(SystemSetting).all()
    return {row.key: row.value for row in rows}
