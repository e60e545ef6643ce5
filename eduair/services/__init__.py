"""Services Layer — ingestion, reconciliation engine, and ledger backends.

Invariants:
    - Services orchestrate core/ pure functions around async IO (ledger, publisher)
    - Collaborators are injected through constructors, never imported as singletons
"""
