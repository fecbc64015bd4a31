"""
wifiboot - WiFi connectivity bootstrap for headless devices.

Detects whether the device has a working wireless connection, falls back
to broadcasting a configuration access point when it does not, and
switches back to station mode once new credentials are supplied.
"""

__version__ = "0.1.0"
__author__ = "wifiboot Contributors"
