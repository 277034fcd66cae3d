"""Infrastructure layer — connection/transaction scopes and the SQLAlchemy driver adapter.

This layer depends on stdlib, SQLAlchemy, and the domain layer.
It must never import from services at runtime.
"""
