"""Pydantic wire models for installer requests and responses."""
