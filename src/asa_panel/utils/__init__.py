"""Utility modules for configuration, constants and input validation."""
