"""Database Infrastructure - SQLAlchemy Base shared by the entry store."""
