"""String constants for Redis keys used across the application."""

SETTINGS_KEY = "performative-settings"
STATE_LAST = "performative:state:last"

__all__ = [
    "SETTINGS_KEY",
    "STATE_LAST",
]
