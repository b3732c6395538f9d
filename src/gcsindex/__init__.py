"""gcs-index: browsable HTTP index over Cloud Storage buckets."""

__version__ = "0.1.0"
