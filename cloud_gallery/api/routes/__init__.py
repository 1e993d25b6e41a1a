"""
API route modules.

- health: liveness check
- images: upload, listing, delete and metadata
"""
