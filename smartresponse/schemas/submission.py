"""Schemas for public generation and lead capture."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from smartresponse.db.enums import ResultFormat


class GenerateRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    custom_fields: dict[str, Any] = Field(default_factory=dict)


class GenerateResponse(BaseModel):
    result_format: ResultFormat
    text: str | None = None
    images: list[str] = Field(default_factory=list)


class LeadCreateRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    url: str | None = Field(None, max_length=2048)
    result_text: str | None = None
    result_image_url: str | None = None
    custom_fields: dict[str, Any] = Field(default_factory=dict)


class LeadCreateResponse(BaseModel):
    success: bool = True
    lead_id: UUID
    privileged: bool = False


class SubmissionRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    url: str = Field(..., min_length=1, max_length=2048)
    custom_fields: dict[str, Any] = Field(default_factory=dict)


class SubmissionResponse(BaseModel):
    lead_id: UUID
    result_format: ResultFormat
    text: str | None = None
    images: list[str] = Field(default_factory=list)


class UsageResponse(BaseModel):
    count: int
    exists: bool


class QuotaErrorResponse(BaseModel):
    message: str
    resource: str
    current: int
    limit: int | None
