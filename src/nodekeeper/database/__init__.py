"""
SQLAlchemy models and session helpers backing SqlNodeStore.
"""
