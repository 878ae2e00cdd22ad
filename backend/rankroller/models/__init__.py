"""Pydantic models for catalog entries and player state."""
