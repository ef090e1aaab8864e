"""
Core utilities shared across the KushL service.

This package hosts:
- configuration helpers (env vars, storage paths)
- password hashing
- id/timestamp helpers used by every CRUD module

Services and repositories depend on these primitives instead of reading
os.environ or the clock directly.
"""
