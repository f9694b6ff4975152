"""Database Metadata — declarative Base and the test schema bootstrap.

Invariants:
    - Engines and sessions live in infrastructure/database.py, not here
"""
