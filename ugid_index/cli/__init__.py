"""Command-line interface for ugid-index."""
