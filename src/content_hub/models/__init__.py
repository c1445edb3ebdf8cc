"""Pydantic models for content entities and authentication payloads."""
