"""Storage backends, IDs, a snapshot cache and walk comparison for backup repositories."""

__version__ = "0.1.0"