"""
ADVDESK: AI drafting pipelines for law offices

This package implements the multi-tenant orchestration core behind petition
generation, judge-style petition review and client intake chat.
"""

__version__ = "0.1.0"
__author__ = "ADVDESK Team"

from advdesk.config import get_settings

__all__ = ["get_settings", "__version__"]
