"""Single-command entry points (ugid-scan, ugid-query)."""
