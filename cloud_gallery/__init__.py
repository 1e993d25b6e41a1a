"""
Cloud Gallery - a thin HTTP backend for an object-storage image gallery.

This package contains the complete application:
- core: Framework-agnostic gallery logic (key naming, listing, uploads)
- infrastructure: Object storage integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
