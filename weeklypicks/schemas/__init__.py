"""Pydantic schemas for request payloads, queries and responses."""
