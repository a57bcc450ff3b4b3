"""Mirror a broadcast channel into a local SQLite cache."""

__version__ = "0.1.0"
