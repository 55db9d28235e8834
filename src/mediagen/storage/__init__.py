"""Record store and artifact storage."""
