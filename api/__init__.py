"""
HTTP entry point for the approval flow notification connector.
"""

from api.main import app

__all__ = ["app"]
