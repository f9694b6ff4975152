"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic (clock and secrets are passed in)

Design Decisions:
    - Functional core separated from imperative shell: permission decisions,
      draft validation and token verification are testable without a store
"""
