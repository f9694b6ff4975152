"""Simple Task Manager — collaborative mapping projects, tasks and permissions.

Invariants:
    - Package root has no import side effects; it only carries the version
"""

__version__ = "1.0.0"
