"""Persistence base — declarative Base shared by every registry model.

Invariants:
    - One metadata object: alembic autogenerate and test create_all read the same tables
"""
