"""Infrastructure Layer — external service clients and cross-cutting concerns.

Invariants:
    - Infrastructure never imports from core/ domain logic beyond types and errors
    - All external calls wrapped with retry/timeout/error mapping
"""
