"""Roster contracts, loaders and request validation."""
