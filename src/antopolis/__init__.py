"""Antopolis: AI colony attack scheduling and battle simulation."""

__version__ = "0.3.0"
