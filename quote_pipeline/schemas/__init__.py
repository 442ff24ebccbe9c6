"""Pydantic schemas for events and API payloads."""
