"""AI model registry."""
