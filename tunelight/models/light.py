"""Pydantic models for the WLED device and dispatch results."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


WLED_STATE_PATH = "/json/state"


class DeviceTarget(BaseModel):
    """WLED device address. Only stripped, never validated beyond that."""

    ip: str = ""

    @field_validator("ip", mode="before")
    @classmethod
    def strip_ip(cls, v: str | None) -> str:
        return (v or "").strip()

    @property
    def is_set(self) -> bool:
        return bool(self.ip)

    @property
    def state_url(self) -> str:
        return f"http://{self.ip}{WLED_STATE_PATH}"


class DispatchResult(BaseModel):
    """Outcome of sending a command to the device.

    ``accepted`` only certifies that the request left without a transport
    error. The device response is never observed, so it says nothing about
    whether the light actually changed.
    """

    accepted: bool
    message: str
    sent_at: datetime | None = None


class LightStatus(BaseModel):
    """Status line shown under the light controls."""

    message: str = ""
    level: str = Field(default="info", description="info, ok, warning or error")
