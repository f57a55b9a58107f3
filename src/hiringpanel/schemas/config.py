"""Pydantic configuration schema for YAML input."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class CapacityConfig(BaseModel):
    count_closed_interviews: bool = False

    model_config = ConfigDict(extra="forbid")


class LifecycleConfig(BaseModel):
    max_work_length: int = Field(default=1500, ge=1)
    max_report_length: int = Field(default=1500, ge=1)

    model_config = ConfigDict(extra="forbid")


class ServiceConfig(BaseModel):
    admin_id: str | None = None
    hiring_channel: str = "hiring"
    prompt_timeout_seconds: float = Field(default=300.0, gt=0)
    decision_timeout_seconds: float = Field(default=3600.0, gt=0)

    model_config = ConfigDict(extra="forbid")


class AppConfig(BaseModel):
    capacity: CapacityConfig = Field(default_factory=CapacityConfig)
    lifecycle: LifecycleConfig = Field(default_factory=LifecycleConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)

    def to_settings(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def load_config(raw: Any) -> AppConfig:
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
