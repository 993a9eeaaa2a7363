"""
AtlasPM Backend — Application Package Initializer
==================================================

What: Marks the `atlaspm` directory as a Python package.
Why:  Enables module imports like `from atlaspm.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend is layered the same way for every resource:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │    Entity Services (per resource)   │  ← Input rules, lookups
    ├─────────────────────────────────────┤
    │   Update Protocol (shared core)     │  ← Version guard, association
    │                                     │    sync, transactional orchestrator
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Explicit Database handle
    └─────────────────────────────────────┘

    Every mutable resource (project, client, proposal, activity, role, user,
    timesheet) is written through the same update protocol, so optimistic
    concurrency and join-table consistency are implemented exactly once.
"""

__version__ = "1.0.0"
