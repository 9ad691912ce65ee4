"""Storage package - SQLAlchemy tables, repositories and Redis helpers."""
