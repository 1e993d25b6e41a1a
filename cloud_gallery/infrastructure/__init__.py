"""
Infrastructure layer - external service integrations.

- storage: Object storage (S3 and S3-compatible stores, plus an in-memory mock)

These wrappers translate between external formats and our domain models.
"""
