"""Derive resized JPEG thumbnails from S3 object-created notifications."""

__version__ = "0.1.0"
