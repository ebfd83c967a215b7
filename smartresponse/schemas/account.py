"""Schemas for superadmin account administration."""

from uuid import UUID

from pydantic import BaseModel, Field


class AccountQuotaUpdate(BaseModel):
    """Omitted fields are left unchanged; null clears a limit."""

    max_forms: int | None = Field(None, ge=0)
    max_leads: int | None = Field(None, ge=0)
    max_storage_bytes: int | None = Field(None, ge=0)
    daily_test_limit: int | None = Field(None, ge=0)
    can_publish_forms: bool | None = None


class AccountQuotaRead(BaseModel):
    id: UUID
    email: str
    max_forms: int | None
    max_leads: int | None
    max_storage_bytes: int | None
    daily_test_limit: int | None
    can_publish_forms: bool

    model_config = {"from_attributes": True}
