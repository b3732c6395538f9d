"""HTTP request handlers for gcs-index."""
