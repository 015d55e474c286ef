"""Pydantic schemas for the settings API."""

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field


class SettingWrite(BaseModel):
    id: str = Field(..., min_length=1, max_length=255)
    data: Any = None

    model_config = ConfigDict(extra="forbid")


# PATCH /settings accepts one entry or a batch.
SettingsPatch = Union[list[SettingWrite], SettingWrite]


class SettingsUpdated(BaseModel):
    updated: list[str]
