"""Infrastructure Layer — storage backends, identity provider and cross-cutting concerns.

Invariants:
    - Infrastructure implements the protocols in core/repository_protocols.py
    - Storage failures are mapped to DatabaseError (core/errors.py)

Design Decisions:
    - Two UnitOfWork backends behind one protocol: SQL for production,
      in-memory for tests and local runs without a database
"""
