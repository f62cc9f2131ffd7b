"""Services Layer: background prober and user operations.

Invariants:
    - Services receive their collaborators by injection (no module singletons)
    - Datastore access from services always goes through DatastoreGuard
"""
