"""Centralized event name constants.

Structured log events and state-change notifications use these identifiers.
Using constants avoids typos when emitting or filtering events.
"""

# Scene state transitions
STATE_PERFORMATIVE = "state_performative"
STATE_NONPERFORMATIVE = "state_nonperformative"

# Detector events
DETECTOR_ERROR = "detector_error"

# Settings events
SETTINGS_UPDATED = "settings_updated"
SETTINGS_RESET = "settings_reset"
SETTINGS_LOAD_FAIL = "settings_load_fail"
SETTINGS_SAVE_FAIL = "settings_save_fail"

# Frame loop lifecycle events
LOOP_START = "loop_start"
LOOP_STOP = "loop_stop"
LOOP_PAUSED = "loop_paused"
LOOP_RESUMED = "loop_resumed"

# All events set for easy validation
ALL_EVENTS = {
    STATE_PERFORMATIVE,
    STATE_NONPERFORMATIVE,
    DETECTOR_ERROR,
    SETTINGS_UPDATED,
    SETTINGS_RESET,
    SETTINGS_LOAD_FAIL,
    SETTINGS_SAVE_FAIL,
    LOOP_START,
    LOOP_STOP,
    LOOP_PAUSED,
    LOOP_RESUMED,
}

__all__ = [
    "STATE_PERFORMATIVE",
    "STATE_NONPERFORMATIVE",
    "DETECTOR_ERROR",
    "SETTINGS_UPDATED",
    "SETTINGS_RESET",
    "SETTINGS_LOAD_FAIL",
    "SETTINGS_SAVE_FAIL",
    "LOOP_START",
    "LOOP_STOP",
    "LOOP_PAUSED",
    "LOOP_RESUMED",
    "ALL_EVENTS",
]
