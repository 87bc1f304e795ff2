"""
Chronicle - personal context storage engine.

Timeline events, a versioned entity graph and an expiring key-value store,
all persisted in one SQLite database.
"""

__version__ = "0.1.0"
