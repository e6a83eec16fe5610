"""Persistence adapters: SQLAlchemy models, mappers and repositories."""
