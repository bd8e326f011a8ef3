"""
Fellowship Backend
==================

A social-networking API built from independent concepts (Authentication,
Sessioning, Posting, Friending, Following) composed in `fellowship.concepts`
and exposed by thin FastAPI routers.

    ┌─────────────────────────────────────┐
    │     Routes (HTTP surface)           │  resolve actor + usernames
    ├─────────────────────────────────────┤
    │     Concepts / Engines              │  invariants, typed failures
    ├─────────────────────────────────────┤
    │     Repositories                    │  typed access to relation tables
    ├─────────────────────────────────────┤
    │     Database (async SQLAlchemy)     │
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
