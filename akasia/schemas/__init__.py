"""Schemas module - pydantic request/response DTOs."""
