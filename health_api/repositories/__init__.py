"""
Persistence adapters.

The SQL repository owns accounts and profiles; the KV store backs
verification codes and the ad-hoc cache. Services receive these adapters at
construction time rather than touching storage directly.
"""
