"""
PC Shop core package

Core owns the store: where it lives, creating and initialising it
exactly once, opening the shared connection, and catalog queries.

Invariants:
- Store location resolved once per process from the environment
- Schema applied at most once per store lifetime
- Reference catalog seeded only into an empty catalog
"""

__version__ = "1.0.0"
