"""Metric storage, API and synthetic generator."""
