"""Command-line interface for the storage gateway."""
