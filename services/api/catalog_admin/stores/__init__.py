"""Data stores for persistence and coordination.

Stores handle:
- Tree store: the remote Realtime Database (or an in-process tree)
- Redis: distributed locks for in-flight mutations

No dashboard logic in stores - that belongs in services.
"""
