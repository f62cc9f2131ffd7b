"""Database Infrastructure: SQLAlchemy Base for the relational datastore.

Invariants:
    - Single async engine per process (owned by RelationalDatastore)
    - All sessions are async (AsyncSession)

Design Decisions:
    - asyncpg driver for PostgreSQL, aiosqlite in tests (ADR: native async, no thread pool overhead)
"""
