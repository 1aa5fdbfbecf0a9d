"""Pydantic request and response models for the API."""
