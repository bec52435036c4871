"""
Core utilities shared across the health API.

This package hosts configuration helpers (env vars, feature flags), logging
setup, password hashing and the rate limit helper. Services and routers
depend on these primitives instead of reading os.environ directly.
"""
