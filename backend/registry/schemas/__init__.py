"""Pydantic Schemas — request/response contracts for the admin account API.

Invariants:
    - Schemas validate at the system boundary; services receive plain commands
    - Response schemas are built from store rows via from_attributes

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
