"""
Domain layer - value types and persistent entities.

types.py holds the immutable values the scheduler works with; entities.py
holds the SQLAlchemy models the stores map them onto.
"""
