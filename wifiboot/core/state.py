"""
Connectivity data model.

Device modes, scan results and the credentials submitted by the user.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator

# wpa_supplicant reports this once association and key exchange are done
CONNECTED_STATE = "COMPLETED"

# Network names, strongest signal first
ScanResult = list[str]


class DeviceMode(str, Enum):
    """What the wireless interface is doing right now."""

    STATION = "station"  # Attached to an existing network
    PROVISIONING = "provisioning"  # Broadcasting the configuration AP
    TRANSITIONING = "transitioning"  # A mode switch is in flight


class WiFiCredentials(BaseModel):
    """Network credentials as submitted by the user."""

    ssid: str = Field(min_length=1)
    password: str | None = None  # None or empty selects an open network

    @field_validator("ssid", "password", mode="before")
    @classmethod
    def strip_whitespace(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("ssid", "password")
    @classmethod
    def reject_control_characters(cls, v: str | None) -> str | None:
        # Values end up as lines in supplicant and connman config files
        if v is not None and any(ord(c) < 0x20 or ord(c) == 0x7F for c in v):
            raise ValueError("must not contain control characters")
        return v

    @property
    def is_open(self) -> bool:
        return not self.password
