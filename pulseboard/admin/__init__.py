"""Configuration and user administration."""
