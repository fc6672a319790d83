"""Core configuration, logging and geocoding components."""
