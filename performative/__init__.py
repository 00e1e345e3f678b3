"""Performative scene detection: classification, hysteresis and overlays."""

__version__ = "0.1.0"
