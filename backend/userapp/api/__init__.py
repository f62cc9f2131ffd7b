"""API Layer: FastAPI routes and request-scoped dependencies.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - All endpoints return structured JSON (or Prometheus text for /metrics)

Design Decisions:
    - Thin routes delegate to services (ADR: impureim sandwich)
"""
