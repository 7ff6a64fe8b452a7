"""
Quiz session and integrity engine.

Pure Python: no FastAPI or SQLAlchemy imports. Collaborators are reached
through the abstract stores in ``picquiz.stores.base``.
"""
