"""Dashboard services.

Services hold the CRUD engines, join views and console state, and are called
by routes. They take the tree store explicitly so they can run against the
remote database or an in-process tree.
"""
