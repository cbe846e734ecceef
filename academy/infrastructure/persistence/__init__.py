"""Persistence: SQLAlchemy engine/session, ORM models, cached repositories."""
