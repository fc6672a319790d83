"""Gym finder dataset geocoding."""

__version__ = "0.1.0"
