"""Infrastructure layer for drive app.

This package contains integrations with external systems:
- Object store backends (S3/MinIO/R2 and in-memory)
- Metadata extraction (MIME type, checksum) and input validation

Keep infrastructure concerns separate from business logic.
"""
