"""Setup portal for wifiboot."""

from wifiboot.setup.portal import SetupPortal

__all__ = ["SetupPortal"]
