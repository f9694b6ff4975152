"""Services Layer — permission, project and task managers plus the transaction runner.

Invariants:
    - Services receive a UnitOfWork; they never open, commit or roll back one
    - run_in_transaction is the only place a unit of work is committed

Design Decisions:
    - One service class per aggregate for locality
"""
