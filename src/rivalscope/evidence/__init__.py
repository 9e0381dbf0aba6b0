"""Evidence pipeline stages."""
