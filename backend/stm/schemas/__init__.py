"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate shape and types at the boundary; domain rules
      (ranges, ownership, geometry) are enforced by core/ and services/
    - JSON field names are camelCase (taskIds, maxProcessPoints, ...)

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
