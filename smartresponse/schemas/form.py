"""Schemas for forms, quotas and knowledge files."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from smartresponse.db.enums import ImageSize, ResultFormat


class FormCreate(BaseModel):
    name: str | None = Field(None, max_length=255)


class FormUpdate(BaseModel):
    name: str | None = Field(None, max_length=255)
    is_active: bool | None = None
    result_format: ResultFormat | None = None
    system_prompt: str | None = None
    image_size: ImageSize | None = None
    notify_on_new_lead: bool | None = None
    send_email_to_respondent: bool | None = None


class FormRead(BaseModel):
    id: UUID
    name: str
    is_active: bool
    lead_count: int
    result_format: ResultFormat
    system_prompt: str | None
    image_size: ImageSize
    notify_on_new_lead: bool
    send_email_to_respondent: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class QuotaUsage(BaseModel):
    current: int
    limit: int | None
    remaining: int | None


class QuotaSnapshot(BaseModel):
    forms: QuotaUsage
    leads: QuotaUsage
    storage_bytes: QuotaUsage
    daily_tests: QuotaUsage


class KnowledgeFileRead(BaseModel):
    id: UUID
    file_name: str
    content_type: str
    file_size: int
    created_at: datetime

    model_config = {"from_attributes": True}
