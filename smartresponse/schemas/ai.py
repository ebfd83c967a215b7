"""Schemas for AI helper endpoints and system settings."""

from pydantic import BaseModel, Field


class ImprovePromptRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=20000)


class ImprovePromptResponse(BaseModel):
    prompt: str


class SystemSettingRead(BaseModel):
    key: str
    value: str | None


class SystemSettingUpdate(BaseModel):
    value: str | None = Field(None, max_length=20000)
