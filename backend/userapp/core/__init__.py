"""Core Layer: availability state machine, guard policy, errors, protocols.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Nothing in core/ performs I/O; awaitables are only passed through

Design Decisions:
    - Functional core separated from imperative shell (ADR: impureim sandwich)
"""
