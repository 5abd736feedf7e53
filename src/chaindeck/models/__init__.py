"""Pydantic models for chaindeck configuration and cached state."""
