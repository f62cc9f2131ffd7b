"""Infrastructure Layer: datastore clients, metrics and logging.

Invariants:
    - Driver exceptions never escape this layer untranslated; they become
      ConnectivityError or a domain error from core/errors.py
    - Every connection is acquired with scoped (async with) release
"""
