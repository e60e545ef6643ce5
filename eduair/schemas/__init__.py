"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (device and admin payloads)
    - Wire format is camelCase; Python attributes are snake_case
    - Domain enums from core/ used for status fields
"""
