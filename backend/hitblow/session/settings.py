"""Session layer configuration via environment variables."""

from typing import Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class SessionSettings(BaseSettings):
    model_config = {"env_prefix": "HITBLOW_"}

    heartbeat_interval_seconds: float = Field(default=10, gt=0)
    presence_threshold_seconds: float = Field(default=30, gt=0)  # three heartbeats of margin
    waiting_list_limit: int = Field(default=20, ge=1)
    # False restores advisory turns: any seated player may guess at any time.
    enforce_turn_order: bool = True

    @model_validator(mode="after")
    def _validate_presence_window(self) -> Self:
        if self.presence_threshold_seconds <= self.heartbeat_interval_seconds:
            raise ValueError("presence_threshold_seconds must exceed heartbeat_interval_seconds")
        return self
