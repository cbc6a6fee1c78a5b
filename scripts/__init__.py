"""Command-line entry points for the ETA benchmark engine."""
