"""Test fixture package for the gym finder geocoder.

Contains fixtures for:
- Provider doubles and raw provider payloads
- Dataset files and isolated settings
"""
