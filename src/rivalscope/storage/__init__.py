"""Persistence adapters (page cache, artifacts)."""
