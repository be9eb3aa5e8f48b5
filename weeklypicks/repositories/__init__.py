"""Repositories: async data access built on SQLAlchemy sessions."""
