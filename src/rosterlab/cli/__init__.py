"""Command-line interface for rosterlab."""
