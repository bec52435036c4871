"""
High-level use cases for the health API.

Each service module orchestrates repositories/adapters to implement business
rules (issue a code, reset a password, score a profile). Routers call these
services instead of touching the database or the key-value store directly.
"""
