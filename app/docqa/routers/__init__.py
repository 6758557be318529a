"""
Routers package for FastAPI endpoints.

- documents: Document upload/management and question answering
"""

from . import documents

__all__ = ["documents"]
