"""Business logic layer for drive app.

This package contains the hierarchy and lifecycle rules:
- Folder create, update, move and tree assembly
- File upload, copy, move, download and preview
- Trash (soft delete, restore, permanent delete)
- Public link sharing

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
Views call these functions with an authenticated user and translate
``DriveError`` subclasses into HTTP responses.
"""
