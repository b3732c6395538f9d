"""Storage backends for gcs-index."""
