"""
HTTP surface for record ingress and export.
"""

from .app import create_app

__all__ = ["create_app"]
