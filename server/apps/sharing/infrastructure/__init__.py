"""Infrastructure layer for sharing app.

This package contains integrations with external systems:
- Blob storage backend (S3/MinIO/R2) holding ciphertext only
- Identifier, IV and filename validation

Keep infrastructure concerns separate from business logic.
"""
