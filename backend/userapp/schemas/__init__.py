"""Pydantic Schemas: request/response validation for API endpoints.

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence (ADR: DDD boundary)
"""
