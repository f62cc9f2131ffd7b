"""ORM Models: SQLAlchemy declarative models for the relational datastore.

Invariants:
    - All models inherit from Base (db/base.py)
    - All models imported here so Base.metadata is complete for create_all
      and Alembic autogenerate
"""

from userapp.models.user import User  # noqa: F401
